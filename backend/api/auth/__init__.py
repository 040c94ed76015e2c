"""API authentication: Starlette backend, user model, and route policy."""

from api.auth.backend import SessionCookieBackend
from api.auth.models import AuthenticatedUser
from api.auth.policy import protected_api, public_route, validate_route_auth_policy

__all__ = [
    "AuthenticatedUser",
    "SessionCookieBackend",
    "protected_api",
    "public_route",
    "validate_route_auth_policy",
]
