"""API server: app factory, middleware, and settings."""
