"""Infrastructure: scopes, scope stack and logging."""
