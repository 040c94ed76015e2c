"""Starlette AuthenticationBackend that resolves the session cookie."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.authentication import AuthCredentials, AuthenticationBackend

from api.auth.models import AuthenticatedUser
from authcore.auth.errors import UnauthenticatedError

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from authcore.auth.service import AuthService


class SessionCookieBackend(AuthenticationBackend):
    """Authenticate requests via the session cookie.

    A missing, unknown, or expired cookie leaves the request anonymous;
    routes decide whether that is acceptable.
    """

    def __init__(self, auth_service: AuthService, cookie_name: str = "session_id") -> None:
        self._auth_service = auth_service
        self._cookie_name = cookie_name

    async def authenticate(
        self,
        conn: HTTPConnection,
    ) -> tuple[AuthCredentials, AuthenticatedUser] | None:
        token = conn.cookies.get(self._cookie_name)
        if not token:
            return None
        try:
            profile = await self._auth_service.current_user(token)
        except UnauthenticatedError:
            return None
        return AuthCredentials(["authenticated"]), AuthenticatedUser(profile, token)
