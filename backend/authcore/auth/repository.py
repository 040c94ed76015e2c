"""User persistence: abstract interface and an in-memory implementation."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from authcore.auth.models import normalize_email

if TYPE_CHECKING:
    from authcore.auth.models import User


class UserRepository(ABC):
    """Abstract interface for user persistence.

    ``create_user`` must reject a duplicate user_id or normalized email with
    ValueError, atomically with respect to concurrent callers.
    """

    @abstractmethod
    async def create_user(self, user: User) -> None: ...

    @abstractmethod
    async def get_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def get_by_id(self, user_id: str) -> User | None: ...

    @abstractmethod
    async def update_password_hash(self, user_id: str, password_hash: str) -> User: ...


class InMemoryUserRepository(UserRepository):
    """Dict-backed repository. Contents are lost on restart."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}  # keyed by user_id
        self._lock = asyncio.Lock()

    async def create_user(self, user: User) -> None:
        async with self._lock:
            check_unique(self._users, user)
            self._users[user.user_id] = user

    async def get_by_email(self, email: str) -> User | None:
        return find_by_email(self._users, email)

    async def get_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def update_password_hash(self, user_id: str, password_hash: str) -> User:
        async with self._lock:
            user = require_user(self._users, user_id)
            updated = user.model_copy(update={"password_hash": password_hash})
            self._users[user_id] = updated
            return updated


def check_unique(users: dict[str, User], user: User) -> None:
    """Raise ValueError if the user_id or email is already present."""
    if user.user_id in users:
        raise ValueError(f"User with id '{user.user_id}' already exists")
    if find_by_email(users, user.email) is not None:
        raise ValueError("Email is already registered")


def find_by_email(users: dict[str, User], email: str) -> User | None:
    normalized = normalize_email(email)
    return next((u for u in users.values() if u.email == normalized), None)


def require_user(users: dict[str, User], user_id: str) -> User:
    user = users.get(user_id)
    if user is None:
        raise KeyError(user_id)
    return user
