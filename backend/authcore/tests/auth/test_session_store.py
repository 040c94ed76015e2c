"""Tests for SessionStore."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import patch

import pytest

from authcore.auth.errors import SessionExpiredError, SessionNotFoundError, TokenCollisionError
from authcore.auth.session_store import SessionStore


class TestCreate:
    def test_creates_session_with_correct_fields(self):
        store = SessionStore()
        session = store.create("user-1", ttl_seconds=60)

        assert session.user_id == "user-1"
        assert session.token
        assert session.expires_at == pytest.approx(session.created_at + 60)
        assert session.http_only is True

    def test_uses_default_ttl(self):
        store = SessionStore(default_ttl_seconds=120)
        session = store.create("u1")
        assert session.ttl_seconds == 120

    def test_token_has_at_least_128_bits(self):
        store = SessionStore()
        token = store.create("u1").token
        # token_urlsafe encodes 6 bits per character
        assert len(token) * 6 >= 128

    def test_tokens_are_unique(self):
        store = SessionStore()
        tokens = {store.create("u1").token for _ in range(100)}
        assert len(tokens) == 100

    def test_secure_flag_is_recorded(self):
        store = SessionStore()
        assert store.create("u1", secure=True).secure is True

    def test_collision_is_rejected_not_overwritten(self):
        store = SessionStore(token_factory=lambda: "fixed-token")
        first = store.create("u1")

        with pytest.raises(TokenCollisionError):
            store.create("u2")

        assert store.resolve(first.token) == "u1"


class TestResolve:
    def test_returns_user_id_right_after_create(self):
        store = SessionStore()
        session = store.create("u1")
        assert store.resolve(session.token) == "u1"

    def test_unknown_token_raises_not_found(self):
        store = SessionStore()
        with pytest.raises(SessionNotFoundError):
            store.resolve("nonexistent")

    def test_expired_session_raises_and_is_removed(self):
        store = SessionStore()
        session = store.create("u1", ttl_seconds=10)

        with patch("authcore.auth.session_store.time") as mock_time:
            mock_time.time.return_value = session.expires_at + 1
            with pytest.raises(SessionExpiredError):
                store.resolve(session.token)

        assert session.token not in store._sessions
        # Once purged the token is simply unknown
        with pytest.raises(SessionNotFoundError):
            store.resolve(session.token)

    def test_session_is_live_until_expiry(self):
        store = SessionStore()
        session = store.create("u1", ttl_seconds=10)

        with patch("authcore.auth.session_store.time") as mock_time:
            mock_time.time.return_value = session.expires_at
            assert store.resolve(session.token) == "u1"


class TestInvalidate:
    def test_removes_existing_session(self):
        store = SessionStore()
        session = store.create("u1")

        store.invalidate(session.token)
        with pytest.raises(SessionNotFoundError):
            store.resolve(session.token)

    def test_is_idempotent(self):
        store = SessionStore()
        session = store.create("u1")

        store.invalidate(session.token)
        store.invalidate(session.token)
        store.invalidate("never-existed")

    def test_invalidate_user_removes_only_that_users_sessions(self):
        store = SessionStore()
        a1 = store.create("alice")
        a2 = store.create("alice")
        b1 = store.create("bob")

        assert store.invalidate_user("alice") == 2

        for token in (a1.token, a2.token):
            with pytest.raises(SessionNotFoundError):
                store.resolve(token)
        assert store.resolve(b1.token) == "bob"


class TestCleanupExpired:
    def test_removes_expired_sessions(self):
        store = SessionStore()
        store.create("u1", ttl_seconds=0)
        store.create("u2", ttl_seconds=0)
        active = store.create("u3", ttl_seconds=3600)

        with patch("authcore.auth.session_store.time") as mock_time:
            mock_time.time.return_value = time.time() + 1
            removed = store.cleanup_expired()

        assert removed == 2
        assert store.resolve(active.token) == "u3"

    def test_returns_zero_when_nothing_expired(self):
        store = SessionStore()
        store.create("u1", ttl_seconds=3600)
        assert store.cleanup_expired() == 0


class TestCleanupLifecycle:
    async def test_start_and_stop_cleanup(self):
        store = SessionStore()
        store.start_cleanup()
        assert store._cleanup_task is not None
        assert not store._cleanup_task.done()

        await store.stop_cleanup()
        assert store._cleanup_task is None

    async def test_start_is_idempotent(self):
        store = SessionStore()
        store.start_cleanup()
        task1 = store._cleanup_task

        store.start_cleanup()
        assert store._cleanup_task is task1
        await store.stop_cleanup()

    async def test_stop_without_start_is_safe(self):
        store = SessionStore()
        await store.stop_cleanup()

    async def test_cleanup_loop_runs_periodically(self):
        store = SessionStore()
        store.create("u1", ttl_seconds=0)

        with patch.object(store, "cleanup_expired", wraps=store.cleanup_expired) as mock_cleanup:
            with patch("authcore.auth.session_store.CLEANUP_INTERVAL_SECONDS", 0.01):
                store.start_cleanup()
                await asyncio.sleep(0.05)
                await store.stop_cleanup()

            assert mock_cleanup.call_count >= 1
