"""
Custom exceptions for scopekit.

This module defines all custom exceptions raised by the runtime, providing a
clear error hierarchy and structured details for debugging.
"""

from typing import Any, Dict, List, Optional, Sequence


class ScopeKitError(Exception):
    """Base exception for all scopekit errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.error_code = error_code


class ConfigurationError(ScopeKitError):
    """Raised when runtime configuration is invalid."""
    pass


class DescriptorError(ScopeKitError):
    """Raised when a dependency descriptor is malformed."""

    def __init__(self, message: str, dependency: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.dependency = dependency


class ContractViolationError(ScopeKitError):
    """Base class for contract programming violations."""
    pass


class PreconditionError(ContractViolationError):
    """Raised when a function precondition is violated."""
    pass


class PostconditionError(ContractViolationError):
    """Raised when a function postcondition is violated."""
    pass


class ResolutionError(ScopeKitError):
    """Base class for dependency graph and lookup failures."""
    pass


class UnresolvedDependencyError(ResolutionError):
    """Raised when a declared dependency has no descriptor in the same scope."""

    def __init__(self, dependency: str, dependent: str, **kwargs):
        super().__init__(
            f"Dependency '{dependency}' not found for '{dependent}'",
            details={"dependency": dependency, "dependent": dependent},
            **kwargs
        )
        self.dependency = dependency
        self.dependent = dependent


class CyclicDependencyError(ResolutionError):
    """Raised when the declared dependencies of a scope form a cycle."""

    def __init__(self, remaining: Sequence[str], cycle: Sequence[str] = (), **kwargs):
        message = "Cyclic dependency detected"
        if cycle:
            message += ": " + " -> ".join(cycle)
        super().__init__(
            message,
            details={"remaining": list(remaining), "cycle": list(cycle)},
            **kwargs
        )
        self.remaining = list(remaining)
        self.cycle = list(cycle)


class UnregisteredDependencyError(ResolutionError):
    """Raised when no open scope holds an instance for the requested key."""

    def __init__(self, dependency: str, **kwargs):
        super().__init__(f"There is no registration of dependency {dependency}", **kwargs)
        self.dependency = dependency


class DependencyTypeError(ResolutionError):
    """Raised when a resolved instance does not match the type of its key."""

    def __init__(self, dependency: str, expected: str, actual: str, **kwargs):
        super().__init__(
            f"Dependency {dependency} resolved to {actual}, expected {expected}",
            details={"expected": expected, "actual": actual},
            **kwargs
        )
        self.dependency = dependency
        self.expected = expected
        self.actual = actual


class EmptyStackError(ScopeKitError):
    """Raised when the scope stack is read or popped while empty."""

    def __init__(self, operation: str, **kwargs):
        super().__init__(f"There is no scope to {operation}", **kwargs)
        self.operation = operation


class LifecycleError(ScopeKitError):
    """Base class for failures raised by instance lifecycle hooks."""
    pass


class InitializationError(LifecycleError):
    """Raised when an asynchronous initializer fails during a scope build."""

    def __init__(self, dependency: str, original: BaseException, wave: Optional[int] = None, **kwargs):
        super().__init__(
            f"Initialization of {dependency} failed: {original}",
            details={"wave": wave, "error_type": type(original).__name__},
            **kwargs
        )
        self.dependency = dependency
        self.original = original
        self.wave = wave


class DisposalError(LifecycleError):
    """Raised after a disposal cascade in which one or more instances failed."""

    def __init__(self, dependency: str, original: BaseException, errors: Optional[List[BaseException]] = None, **kwargs):
        super().__init__(f"Disposal of {dependency} failed: {original}", **kwargs)
        self.dependency = dependency
        self.original = original
        self.errors = errors or [original]


def is_programming_error(exception: BaseException) -> bool:
    """Determine if an error is a structural misuse of the runtime.

    Structural errors are never retried and point at the registration code,
    while lifecycle errors come from the instances themselves.
    """
    programming_errors = (
        ResolutionError,
        EmptyStackError,
        ContractViolationError,
        DescriptorError,
        ConfigurationError,
    )

    return isinstance(exception, programming_errors)
