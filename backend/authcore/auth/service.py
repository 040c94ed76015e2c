"""Auth service coordinating signup, login, logout, and session lookups."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from authcore.auth.errors import (
    InvalidCredentialsError,
    SessionExpiredError,
    SessionNotFoundError,
    UnauthenticatedError,
)
from authcore.auth.models import AuthResult

if TYPE_CHECKING:
    from authcore.auth.credentials import CredentialStore
    from authcore.auth.models import Session, User, UserProfile
    from authcore.auth.session_store import SessionStore

logger = structlog.get_logger()


class AuthService:
    """Coordinate account signup, login, logout, and "who am I" queries.

    Every operation takes its token or credentials explicitly; nothing is
    read from ambient request state.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        session_store: SessionStore,
        *,
        session_ttl_seconds: int | None = None,
        auto_login_on_signup: bool = True,
        cookie_secure: bool = False,
    ) -> None:
        self._credentials = credentials
        self._session_store = session_store
        self._session_ttl_seconds = session_ttl_seconds
        self._auto_login_on_signup = auto_login_on_signup
        self._cookie_secure = cookie_secure

    async def signup(self, email: str, password: str) -> AuthResult:
        """Register an account and, unless disabled, log it in immediately.

        Raises InvalidInputError or DuplicateEmailError.
        """
        user = await self._credentials.register(email, password)
        if not self._auto_login_on_signup:
            return AuthResult(user=user.to_profile(), session=None)
        return AuthResult(user=user.to_profile(), session=self._issue_session(user))

    async def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and create a session. Raises InvalidCredentialsError."""
        try:
            user = await self._credentials.verify(email, password)
        except InvalidCredentialsError:
            logger.info("login rejected")
            raise
        logger.info("user logged in", user_id=user.user_id)
        return AuthResult(user=user.to_profile(), session=self._issue_session(user))

    def logout(self, token: str | None) -> None:
        """Destroy a session. Missing, unknown, and expired tokens are fine."""
        if token:
            self._session_store.invalidate(token)

    async def current_user(self, token: str | None) -> UserProfile:
        """Return the profile behind a session token.

        Raises UnauthenticatedError uniformly for a missing, unknown, or
        expired token.
        """
        user = await self._resolve_user(token)
        return user.to_profile()

    async def change_password(self, token: str | None, current_password: str, new_password: str) -> Session:
        """Replace the password of the session's user and rotate sessions.

        Every live session of the user is invalidated, including the one
        presented, and a fresh session is returned.
        """
        user = await self._resolve_user(token)
        await self._credentials.verify(user.email, current_password)
        updated = await self._credentials.change_password(user.user_id, new_password)
        revoked = self._session_store.invalidate_user(updated.user_id)
        logger.info("password changed", user_id=updated.user_id, revoked_sessions=revoked)
        return self._issue_session(updated)

    # -- private helpers --

    async def _resolve_user(self, token: str | None) -> User:
        if not token:
            raise UnauthenticatedError
        try:
            user_id = self._session_store.resolve(token)
        except (SessionNotFoundError, SessionExpiredError) as e:
            raise UnauthenticatedError from e
        user = await self._credentials.get(user_id)
        if user is None:
            logger.warning("session references missing user", user_id=user_id)
            self._session_store.invalidate(token)
            raise UnauthenticatedError
        return user

    def _issue_session(self, user: User) -> Session:
        return self._session_store.create(
            user.user_id,
            self._session_ttl_seconds,
            http_only=True,
            secure=self._cookie_secure,
        )
