"""
Lifecycle capabilities of produced instances.

Capabilities are structural: any value exposing ``async initialize()`` is
initializable and any value exposing ``dispose()`` is disposable, with no
base class required. They are probed once, right after construction, and
recorded on the registry entry.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from scopekit.core.domain.descriptor import Descriptor

if TYPE_CHECKING:
    from scopekit.infrastructure.di.scope import Scope


@runtime_checkable
class Initializable(Protocol):
    """Instance with asynchronous post-construction setup."""

    async def initialize(self) -> None:
        ...


@runtime_checkable
class Disposable(Protocol):
    """Instance holding resources released when its scope is popped."""

    def dispose(self) -> None:
        ...


@dataclass(frozen=True, eq=False)
class ResolvedInstance:
    """Registry entry of a scope: the produced value and who owns it."""
    owner: "Scope"
    descriptor: Descriptor
    value: Any
    initializable: bool
    disposable: bool
    sequence: int

    @classmethod
    def capture(cls, owner: "Scope", descriptor: Descriptor, value: Any, sequence: int) -> "ResolvedInstance":
        """Record a freshly built value together with its capabilities."""
        return cls(
            owner=owner,
            descriptor=descriptor,
            value=value,
            initializable=isinstance(value, Initializable),
            disposable=isinstance(value, Disposable),
            sequence=sequence,
        )

    @property
    def name(self) -> str:
        return self.descriptor.name
