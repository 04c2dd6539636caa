"""
Contract Programming implementation with preconditions and postconditions.

This module provides decorators for Design by Contract checks on the scope
lifecycle: registration is only legal before a build, a build runs once,
and initialization plans partition their instances.
"""

import functools
import inspect
from typing import Any, Callable, Type, TypeVar, Union

import structlog

from scopekit.shared.exceptions import ContractViolationError, PreconditionError, PostconditionError

logger = structlog.get_logger(__name__)

F = TypeVar('F', bound=Callable[..., Any])

Condition = Union[bool, Callable[..., bool]]


def _evaluate(
    condition: Condition,
    func: Callable,
    error_type: Type[ContractViolationError],
    *args,
    **kwargs
) -> bool:
    if not callable(condition):
        return bool(condition)

    kind = error_type.__name__.replace("Error", "")
    try:
        return bool(condition(*args, **kwargs))
    except Exception as e:
        logger.error(
            f"{kind} evaluation failed",
            function=func.__qualname__,
            error=str(e)
        )
        raise error_type(f"{kind} evaluation error in {func.__qualname__}: {e}") from e


def require(condition: Condition, message: str = "") -> Callable[[F], F]:
    """
    Precondition decorator - validates arguments and receiver state.

    The condition is evaluated when the decorated callable is invoked. For an
    ``async def`` function that is before its body runs, so state the body
    sets is not seen by a second call made before the first is awaited;
    guard such state in a plain method that returns the coroutine.

    Args:
        condition: Boolean or callable taking the function arguments
        message: Custom error message for contract violation

    Raises:
        PreconditionError: If precondition is not met
    """
    def decorator(func: F) -> F:

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not _evaluate(condition, func, PreconditionError, *args, **kwargs):
                error_msg = message or f"Precondition failed in {func.__qualname__}"
                bound = inspect.signature(func).bind_partial(*args, **kwargs)
                logger.warning(
                    "Precondition violation",
                    function=func.__qualname__,
                    message=error_msg,
                    arguments=list(bound.arguments)
                )
                raise PreconditionError(error_msg)

            return func(*args, **kwargs)

        return wrapper
    return decorator


def ensure(condition: Condition, message: str = "") -> Callable[[F], F]:
    """
    Postcondition decorator - validates return values.

    Args:
        condition: Boolean or callable taking the result followed by the
            function arguments
        message: Custom error message for contract violation

    Raises:
        PostconditionError: If postcondition is not met
    """
    def decorator(func: F) -> F:

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            result = func(*args, **kwargs)

            if not _evaluate(condition, func, PostconditionError, result, *args, **kwargs):
                error_msg = message or f"Postcondition failed in {func.__qualname__}"
                logger.warning(
                    "Postcondition violation",
                    function=func.__qualname__,
                    message=error_msg,
                    result=type(result).__name__
                )
                raise PostconditionError(error_msg)

            return result

        return wrapper
    return decorator


def non_empty_string(value: str) -> bool:
    """Check if string is non-empty after stripping whitespace."""
    return isinstance(value, str) and len(value.strip()) > 0
