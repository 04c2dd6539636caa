"""Application-facing runtime context."""

from .runtime import Runtime

__all__ = ["Runtime"]
