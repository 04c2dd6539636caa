"""
Structured logging setup for applications embedding scopekit.

scopekit itself only emits events through ``structlog.get_logger``; this
module wires those events to the standard library logging system.
"""

import logging
import sys
from typing import Optional

import structlog

from scopekit.infrastructure.di.config import RuntimeConfig


def configure_logging(
    config: Optional[RuntimeConfig] = None,
    cache_logger_on_first_use: bool = True
) -> structlog.stdlib.BoundLogger:
    """
    Configure structlog over the standard library logging module.

    Args:
        config: Source of the log level and renderer choice
        cache_logger_on_first_use: Freeze loggers after their first event

    Returns:
        Logger for the scopekit package
    """
    config = config or RuntimeConfig()
    level = logging.getLevelName(config.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
    ]
    if config.json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=cache_logger_on_first_use,
    )

    return structlog.get_logger("scopekit")
