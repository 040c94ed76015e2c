"""User model for Starlette AuthenticationMiddleware integration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.authentication import BaseUser

if TYPE_CHECKING:
    from authcore.auth.models import UserProfile


class AuthenticatedUser(BaseUser):
    """Authenticated user for Starlette's request.user.

    Created by the auth backend from a session cookie. Wraps the
    hash-free profile together with the token it was resolved from.
    """

    def __init__(self, profile: UserProfile, token: str) -> None:
        self._profile = profile
        self._token = token

    @property
    def is_authenticated(self) -> bool:  # pragma: no cover
        return True

    @property
    def display_name(self) -> str:  # pragma: no cover
        return self._profile.email

    @property
    def identity(self) -> str:  # pragma: no cover
        return self._profile.user_id

    @property
    def profile(self) -> UserProfile:
        return self._profile

    @property
    def token(self) -> str:
        return self._token
