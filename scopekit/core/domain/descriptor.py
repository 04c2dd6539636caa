"""
Dependency descriptors.

A descriptor pairs the key of a produced value with the factory that builds
it and the keys that factory reads from its scope while running.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterable, Optional, Tuple, TypeVar, get_type_hints

from scopekit.shared.exceptions import DescriptorError
from scopekit.shared.types import Key, is_key, key_name

if TYPE_CHECKING:
    from scopekit.infrastructure.di.scope import Scope

T = TypeVar('T')


@dataclass(frozen=True)
class Descriptor(Generic[T]):
    """
    Immutable registration record.

    Attributes:
        key: Class or Token identifying the produced value
        factory: Callable receiving the building scope and returning the value
        depends_on: Ordered keys the factory resolves, without duplicates
    """
    key: Key
    factory: Callable[["Scope"], T]
    depends_on: Tuple[Key, ...] = field(default=())

    def __post_init__(self):
        if not is_key(self.key):
            raise DescriptorError(f"Invalid dependency key: {self.key!r}")
        if not callable(self.factory):
            raise DescriptorError(
                f"Factory for {key_name(self.key)} is not callable",
                dependency=key_name(self.key)
            )

        ordered = []
        for dependency in self.depends_on:
            if not is_key(dependency):
                raise DescriptorError(
                    f"Invalid dependency key {dependency!r} declared by {key_name(self.key)}",
                    dependency=key_name(self.key)
                )
            if dependency not in ordered:
                ordered.append(dependency)

        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "depends_on", tuple(ordered))

    @property
    def name(self) -> str:
        """Display name of the produced dependency."""
        return key_name(self.key)

    def __repr__(self) -> str:
        deps = ", ".join(key_name(dep) for dep in self.depends_on)
        return f"Descriptor({self.name}, depends_on=[{deps}])"


def dependency(
    factory: Callable[["Scope"], T],
    *,
    key: Optional[Key] = None,
    depends_on: Iterable[Key] = ()
) -> Descriptor[T]:
    """
    Create a descriptor, inferring the key from the factory when omitted.

    Args:
        factory: Callable receiving the building scope
        key: Explicit key; defaults to the factory's return annotation
        depends_on: Keys the factory reads from its scope

    Returns:
        Descriptor for the factory

    Raises:
        DescriptorError: If no key is given and none can be inferred
    """
    if key is None:
        key = _infer_key(factory)
    return Descriptor(key=key, factory=factory, depends_on=tuple(depends_on))


def _infer_key(factory: Callable[..., Any]) -> Key:
    try:
        hints = get_type_hints(factory)
    except (NameError, TypeError) as e:
        raise DescriptorError(f"Cannot read return annotation of {factory!r}: {e}") from e

    inferred = hints.get("return")
    if inferred is None or inferred is type(None) or not is_key(inferred):
        raise DescriptorError(
            f"Cannot infer dependency key for {factory!r}; annotate its return type or pass key="
        )
    return inferred
