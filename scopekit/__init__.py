"""
scopekit - scoped dependency injection runtime.

Descriptors declare how to build a value and which other values it needs.
A scope sorts its descriptors topologically, instantiates them, runs their
asynchronous initializers in concurrent waves and disposes them when it is
popped from its stack.

Usage:
    from scopekit import Descriptor, ScopeStack

    stack = ScopeStack()
    async with stack.managed([
        Descriptor(int, lambda scope: 3),
        Descriptor(str, lambda scope: f"Hello {scope.get(int)}", depends_on=(int,)),
    ]) as scope:
        assert scope.get(str) == "Hello 3"
"""

from scopekit.application.runtime import Runtime
from scopekit.core.domain.capabilities import Disposable, Initializable, ResolvedInstance
from scopekit.core.domain.descriptor import Descriptor, dependency
from scopekit.core.use_cases.graph_builder import DependencyGraph, sort_descriptors
from scopekit.core.use_cases.initialization import InitializationPlan, plan_initialization
from scopekit.infrastructure.di import MISSING, RuntimeConfig, Scope, ScopeStack
from scopekit.infrastructure.logging import configure_logging
from scopekit.shared.exceptions import (
    ConfigurationError,
    CyclicDependencyError,
    DependencyTypeError,
    DescriptorError,
    DisposalError,
    EmptyStackError,
    InitializationError,
    LifecycleError,
    PreconditionError,
    ResolutionError,
    ScopeKitError,
    UnregisteredDependencyError,
    UnresolvedDependencyError,
)
from scopekit.shared.types import DisposalOrder, InitializationStrategy, Key, Token

__version__ = "0.1.0"

__all__ = [
    # Registration
    "Descriptor",
    "dependency",
    "Token",
    "Key",

    # Capabilities
    "Initializable",
    "Disposable",
    "ResolvedInstance",

    # Resolution
    "DependencyGraph",
    "sort_descriptors",
    "InitializationPlan",
    "plan_initialization",

    # Scopes
    "Scope",
    "ScopeStack",
    "Runtime",
    "MISSING",

    # Configuration
    "RuntimeConfig",
    "InitializationStrategy",
    "DisposalOrder",
    "configure_logging",

    # Errors
    "ScopeKitError",
    "ConfigurationError",
    "DescriptorError",
    "PreconditionError",
    "ResolutionError",
    "UnresolvedDependencyError",
    "CyclicDependencyError",
    "UnregisteredDependencyError",
    "DependencyTypeError",
    "EmptyStackError",
    "LifecycleError",
    "InitializationError",
    "DisposalError",
]
