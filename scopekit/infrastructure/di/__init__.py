"""
Dependency injection infrastructure.

This module provides scopes, the scope stack that chains their lookups and
the runtime configuration they share.
"""

from .config import RuntimeConfig
from .scope import MISSING, Scope
from .stack import ScopeStack

__all__ = [
    "RuntimeConfig",
    "Scope",
    "ScopeStack",
    "MISSING",
]
