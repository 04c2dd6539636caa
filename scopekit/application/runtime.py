"""
Runtime context owning the scope stack of an application.

Integrations such as view layers create one :class:`Runtime` at startup and
pass it to whatever needs to open scopes or resolve dependencies.
"""

from typing import Any, AsyncContextManager, Iterable, Optional

import structlog

from scopekit.core.domain.descriptor import Descriptor
from scopekit.infrastructure.di.config import RuntimeConfig
from scopekit.infrastructure.di.scope import Scope
from scopekit.infrastructure.di.stack import ScopeStack
from scopekit.infrastructure.logging.config import configure_logging
from scopekit.shared.exceptions import DisposalError
from scopekit.shared.types import Key

logger = structlog.get_logger(__name__)


class Runtime:
    """Top-level context: configuration plus the stack of open scopes."""

    def __init__(self, config: Optional[RuntimeConfig] = None):
        self.config = config or RuntimeConfig()
        self.stack = ScopeStack(self.config)

    @classmethod
    def from_env(cls, configure_logs: bool = True) -> "Runtime":
        """Create a runtime configured from ``SCOPEKIT_*`` variables."""
        config = RuntimeConfig.from_env()
        if configure_logs:
            configure_logging(config)
        logger.info(
            "Runtime configured",
            initialization_strategy=config.initialization_strategy.value,
            disposal_order=config.disposal_order.value
        )
        return cls(config)

    def push(self, descriptors: Iterable[Descriptor] = (), name: Optional[str] = None) -> Scope:
        return self.stack.push(descriptors, name=name)

    def pop(self, expected: Optional[Scope] = None) -> Scope:
        return self.stack.pop(expected)

    @property
    def current(self) -> Scope:
        return self.stack.current

    def get(self, key: Key) -> Any:
        return self.stack.get(key)

    def __call__(self, key: Key) -> Any:
        return self.stack.get(key)

    def scope(self, descriptors: Iterable[Descriptor], name: Optional[str] = None) -> AsyncContextManager[Scope]:
        """Push, build and eventually pop a scope around an ``async with`` block."""
        return self.stack.managed(descriptors, name=name)

    def shutdown(self) -> int:
        """
        Pop every open scope, top first.

        The stack is always drained completely; the first disposal failure
        is raised afterwards.

        Returns:
            Number of scopes popped
        """
        popped = 0
        first_error: Optional[DisposalError] = None

        while self.stack:
            try:
                self.stack.pop()
            except DisposalError as e:
                if first_error is None:
                    first_error = e
            popped += 1

        logger.info("Runtime shut down", scopes=popped)
        if first_error is not None:
            raise first_error
        return popped
