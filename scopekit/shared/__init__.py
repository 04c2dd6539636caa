"""Shared exceptions, contracts and key types."""
