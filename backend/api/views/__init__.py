"""HTTP endpoint handlers."""
