"""Tests for SessionCookieBackend."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from api.auth.backend import SessionCookieBackend
from api.auth.models import AuthenticatedUser
from authcore.auth.errors import UnauthenticatedError
from authcore.auth.models import UserProfile

PROFILE = UserProfile(user_id="u1", email="alice@example.com", created_at=0.0)


def _conn(cookies: dict[str, str]) -> MagicMock:
    conn = MagicMock()
    conn.cookies = cookies
    return conn


@pytest.fixture
def auth_service() -> MagicMock:
    service = MagicMock()
    service.current_user = AsyncMock(return_value=PROFILE)
    return service


class TestSessionCookieBackend:
    async def test_authenticates_valid_cookie(self, auth_service):
        backend = SessionCookieBackend(auth_service)

        result = await backend.authenticate(_conn({"session_id": "tok"}))

        assert result is not None
        creds, user = result
        assert creds.scopes == ["authenticated"]
        assert isinstance(user, AuthenticatedUser)
        assert user.profile == PROFILE
        assert user.token == "tok"
        auth_service.current_user.assert_awaited_once_with("tok")

    async def test_missing_cookie_is_anonymous(self, auth_service):
        backend = SessionCookieBackend(auth_service)

        assert await backend.authenticate(_conn({})) is None
        auth_service.current_user.assert_not_awaited()

    async def test_invalid_session_is_anonymous(self, auth_service):
        auth_service.current_user.side_effect = UnauthenticatedError()
        backend = SessionCookieBackend(auth_service)

        assert await backend.authenticate(_conn({"session_id": "expired"})) is None

    async def test_custom_cookie_name(self, auth_service):
        backend = SessionCookieBackend(auth_service, cookie_name="_app_session")

        assert await backend.authenticate(_conn({"session_id": "tok"})) is None
        assert await backend.authenticate(_conn({"_app_session": "tok"})) is not None
