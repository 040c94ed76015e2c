"""Reference Starlette JSON API consuming the session authentication core."""
