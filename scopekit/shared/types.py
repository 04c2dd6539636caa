"""
Type definitions for scopekit.

This module contains the key types used to identify registered dependencies
and the enums that select runtime behaviour.
"""

import inspect
import typing
from enum import Enum
from typing import Any, Generic, Optional, Protocol, Type, TypeVar, Union, cast

from scopekit.shared.contracts import non_empty_string, require

T = TypeVar('T')


class Token(Generic[T]):
    """Distinct dependency key for values without a unique class.

    Tokens compare by identity, so two tokens with the same name are two
    different keys::

        API_URL = Token("api_url", str)
        RETRY_LIMIT = Token("retry_limit", int)
    """

    @require(lambda self, name, type_=None: non_empty_string(name), "Token name cannot be empty")
    def __init__(self, name: str, type_: Optional[Type[T]] = None):
        self.name = name
        self.type_ = type_

    def __repr__(self) -> str:
        if self.type_ is None:
            return f"Token({self.name!r})"
        return f"Token({self.name!r}, {getattr(self.type_, '__qualname__', self.type_)})"


# A dependency is identified either by its class or by a Token
Key = Union[type, Token]


class InitializationStrategy(str, Enum):
    """How initializers are grouped into concurrent waves."""
    TWO_WAVE = "two_wave"
    RANKED = "ranked"


class DisposalOrder(str, Enum):
    """Order in which a scope releases the instances it owns."""
    REVERSE = "reverse"
    FORWARD = "forward"


def is_key(value: Any) -> bool:
    """Check if value can identify a dependency."""
    return isinstance(value, Token) or inspect.isclass(value)


def key_name(key: Any) -> str:
    """Human readable name of a dependency key."""
    if isinstance(key, Token):
        return key.name
    if inspect.isclass(key):
        return key.__qualname__
    return repr(key)


def expected_type(key: Any) -> Optional[type]:
    """
    Type that instances registered under ``key`` must satisfy.

    Returns None when the key carries no checkable type, which is the case
    for untyped tokens and for protocols without ``@runtime_checkable``.
    """
    target = key.type_ if isinstance(key, Token) else key
    if not inspect.isclass(target):
        return None
    if _is_protocol(target) and not _is_runtime_checkable(target):
        return None
    return target


def _is_protocol(tp: type) -> bool:
    if hasattr(typing, "is_protocol"):
        return typing.is_protocol(tp)
    return issubclass(tp, cast("type", Protocol))


def _is_runtime_checkable(tp: type) -> bool:
    try:
        isinstance(None, tp)
    except TypeError:
        return False
    return True
