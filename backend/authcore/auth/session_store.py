"""In-memory session store with lazy expiry and periodic cleanup."""

from __future__ import annotations

import asyncio
import contextlib
import secrets
import time
from typing import TYPE_CHECKING

import structlog

from authcore.auth.errors import SessionExpiredError, SessionNotFoundError, TokenCollisionError
from authcore.auth.models import Session

if TYPE_CHECKING:
    from collections.abc import Callable

CLEANUP_INTERVAL_SECONDS = 300  # 5 minutes
DEFAULT_SESSION_TTL_SECONDS = 86400  # 24 hours
TOKEN_BYTES = 32  # 256 bits of entropy

logger = structlog.get_logger()


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


class SessionStore:
    """Map opaque session tokens to user ids with expiry.

    Sessions are ephemeral: a server restart means re-login. Expired
    sessions are purged when resolved; call start_cleanup() on app startup
    and stop_cleanup() on shutdown to also sweep them periodically.
    Mutations never await, so each one is atomic on the event loop.
    """

    def __init__(
        self,
        *,
        default_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        token_factory: Callable[[], str] = generate_token,
    ) -> None:
        self._sessions: dict[str, Session] = {}
        self._default_ttl_seconds = default_ttl_seconds
        self._token_factory = token_factory
        self._cleanup_task: asyncio.Task[None] | None = None

    def create(
        self,
        user_id: str,
        ttl_seconds: int | None = None,
        *,
        http_only: bool = True,
        secure: bool = False,
    ) -> Session:
        """Create a session for an authenticated user.

        Raises TokenCollisionError if the generated token is already live.
        """
        if ttl_seconds is None:
            ttl_seconds = self._default_ttl_seconds
        token = self._token_factory()
        if token in self._sessions:
            logger.error("session token collision", user_id=user_id)
            raise TokenCollisionError("Generated session token is already in use")
        now = time.time()
        session = Session(
            token=token,
            user_id=user_id,
            created_at=now,
            expires_at=now + ttl_seconds,
            http_only=http_only,
            secure=secure,
        )
        self._sessions[token] = session
        return session

    def resolve(self, token: str) -> str:
        """Return the user id for a live session.

        Raises SessionNotFoundError for an unknown token and
        SessionExpiredError (after deleting the record) for an expired one.
        """
        session = self._sessions.get(token)
        if session is None:
            raise SessionNotFoundError("Unknown session token")
        if time.time() > session.expires_at:
            del self._sessions[token]
            raise SessionExpiredError("Session has expired")
        return session.user_id

    def invalidate(self, token: str) -> None:
        """Remove a session. Unknown tokens are ignored."""
        self._sessions.pop(token, None)

    def invalidate_user(self, user_id: str) -> int:
        """Remove every session belonging to a user. Return count removed."""
        tokens = [t for t, s in self._sessions.items() if s.user_id == user_id]
        for token in tokens:
            del self._sessions[token]
        return len(tokens)

    def cleanup_expired(self) -> int:
        """Remove all expired sessions. Return count of removed sessions."""
        now = time.time()
        expired = [t for t, s in self._sessions.items() if now > s.expires_at]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.info("cleaned up expired sessions", count=len(expired))
        return len(expired)

    def start_cleanup(self) -> None:
        """Start the periodic cleanup background task."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop_cleanup(self) -> None:
        """Stop the periodic cleanup background task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._cleanup_task
            self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
            self.cleanup_expired()
