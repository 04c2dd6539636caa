"""
Global pytest configuration and fixtures for scopekit tests.
"""
import asyncio
from typing import Callable, List, Optional

import pytest
import structlog

from scopekit import RuntimeConfig, ScopeStack
from scopekit.shared.types import DisposalOrder, InitializationStrategy


class Tracked:
    """Initializable test double recording when its initializer runs."""

    def __init__(self, name: str, journal: List[str], delay: float = 0.0, error: Optional[Exception] = None):
        self.name = name
        self.journal = journal
        self.delay = delay
        self.error = error
        self.initialized = False

    async def initialize(self) -> None:
        self.journal.append(f"start {self.name}")
        await asyncio.sleep(self.delay)
        if self.error is not None:
            self.journal.append(f"fail {self.name}")
            raise self.error
        self.initialized = True
        self.journal.append(f"end {self.name}")


class Resource:
    """Disposable test double recording its disposal."""

    def __init__(self, name: str, journal: List[str], error: Optional[Exception] = None):
        self.name = name
        self.journal = journal
        self.error = error
        self.disposed = False

    def dispose(self) -> None:
        self.journal.append(f"dispose {self.name}")
        if self.error is not None:
            raise self.error
        self.disposed = True


@pytest.fixture
def journal() -> List[str]:
    """Shared event journal for test doubles."""
    return []


@pytest.fixture
def tracked(journal: List[str]) -> Callable[..., Tracked]:
    """Factory for initializable test doubles writing to the journal."""
    def make(name: str, delay: float = 0.0, error: Optional[Exception] = None) -> Tracked:
        return Tracked(name, journal, delay=delay, error=error)
    return make


@pytest.fixture
def resource(journal: List[str]) -> Callable[..., Resource]:
    """Factory for disposable test doubles writing to the journal."""
    def make(name: str, error: Optional[Exception] = None) -> Resource:
        return Resource(name, journal, error=error)
    return make


@pytest.fixture
def stack() -> ScopeStack:
    """Scope stack with default configuration."""
    return ScopeStack()


@pytest.fixture
def ranked_stack() -> ScopeStack:
    """Scope stack scheduling initializers by dependency rank."""
    return ScopeStack(RuntimeConfig(initialization_strategy=InitializationStrategy.RANKED))


@pytest.fixture
def forward_stack() -> ScopeStack:
    """Scope stack disposing instances in creation order."""
    return ScopeStack(RuntimeConfig(disposal_order=DisposalOrder.FORWARD))


@pytest.fixture
def reset_structlog():
    """Restore structlog defaults after a test configures it."""
    yield
    structlog.reset_defaults()
