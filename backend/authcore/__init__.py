"""Framework-agnostic cookie session authentication core."""
