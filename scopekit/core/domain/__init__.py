"""Descriptors and instance capabilities."""
