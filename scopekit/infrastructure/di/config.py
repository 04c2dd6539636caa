"""
Runtime configuration for scopekit.

Settings can be passed explicitly or read from ``SCOPEKIT_*`` environment
variables.
"""

import logging
import os
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from scopekit.shared.exceptions import ConfigurationError
from scopekit.shared.types import DisposalOrder, InitializationStrategy

ENVIRONMENT_VARIABLES = {
    "initialization_strategy": "INIT_STRATEGY",
    "disposal_order": "DISPOSAL_ORDER",
    "check_types": "CHECK_TYPES",
    "log_level": "LOG_LEVEL",
    "json_logs": "JSON_LOGS",
}


class RuntimeConfig(BaseModel):
    """Behaviour switches shared by every scope of a stack."""
    model_config = ConfigDict(frozen=True)

    initialization_strategy: InitializationStrategy = InitializationStrategy.TWO_WAVE
    disposal_order: DisposalOrder = DisposalOrder.REVERSE
    check_types: bool = True
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, prefix: str = "SCOPEKIT_") -> "RuntimeConfig":
        """
        Build configuration from environment variables.

        Unset variables keep their defaults.

        Args:
            prefix: Prefix of the variable names

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        values: Dict[str, Any] = {}
        for field_name, suffix in ENVIRONMENT_VARIABLES.items():
            raw = os.getenv(f"{prefix}{suffix}")
            if raw is not None:
                values[field_name] = raw.strip().lower() if field_name != "log_level" else raw.strip()

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid runtime configuration: {e}",
                details={"variables": sorted(values)}
            ) from e
