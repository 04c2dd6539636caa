"""Core dependency resolution logic."""
