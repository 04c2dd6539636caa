"""Structured logging configuration."""

from .config import configure_logging

__all__ = ["configure_logging"]
