"""Credential store: user registration and password verification."""

from __future__ import annotations

import re
import time
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from authcore.auth.errors import DuplicateEmailError, InvalidCredentialsError, InvalidInputError
from authcore.auth.models import User, normalize_email

if TYPE_CHECKING:
    from authcore.auth.password import PasswordHasher
    from authcore.auth.repository import UserRepository

logger = structlog.get_logger()

EMAIL_MAX_LENGTH = 254
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_BYTES = 72  # bcrypt truncates at 72 bytes

# Compared against when the email is unknown so both failure paths hash once.
_DUMMY_PASSWORD = "dummy-password-for-timing"  # noqa: S105


class CredentialStore:
    """Hold user identity records and verify email/password pairs."""

    def __init__(
        self,
        user_repo: UserRepository,
        *,
        password_hasher: PasswordHasher,
        password_min_length: int = PASSWORD_MIN_LENGTH,
    ) -> None:
        self._user_repo = user_repo
        self._hasher = password_hasher
        self._password_min_length = password_min_length
        self._dummy_hash: str | None = None

    async def register(self, email: str, password: str) -> User:
        """Create a user with a freshly hashed password.

        Raises InvalidInputError for a malformed email or weak password and
        DuplicateEmailError when the normalized email is already registered.
        """
        normalized = normalize_email(email)
        _validate_email(normalized)
        _validate_password(password, self._password_min_length)
        if await self._user_repo.get_by_email(normalized) is not None:
            raise DuplicateEmailError("Email is already registered")

        user = User(
            user_id=str(uuid4()),
            email=normalized,
            password_hash=await self._hasher.hash(password),
            created_at=time.time(),
        )
        try:
            await self._user_repo.create_user(user)
        except ValueError as e:
            # Lost a race with a concurrent registration of the same email.
            raise DuplicateEmailError("Email is already registered") from e
        logger.info("user registered", user_id=user.user_id)
        return user

    async def verify(self, email: str, password: str) -> User:
        """Return the user when the password matches.

        Unknown email and wrong password both raise InvalidCredentialsError,
        and both run one hash comparison.
        """
        user = await self._user_repo.get_by_email(normalize_email(email))
        if user is None:
            await self._hasher.verify(password, await self._get_dummy_hash())
            raise InvalidCredentialsError
        if not await self._hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError
        return user

    async def get(self, user_id: str) -> User | None:
        return await self._user_repo.get_by_id(user_id)

    async def change_password(self, user_id: str, new_password: str) -> User:
        """Validate and store a new password hash for an existing user."""
        _validate_password(new_password, self._password_min_length)
        password_hashed = await self._hasher.hash(new_password)
        try:
            return await self._user_repo.update_password_hash(user_id, password_hashed)
        except KeyError as e:
            raise InvalidCredentialsError from e

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await self._hasher.hash(_DUMMY_PASSWORD)
        return self._dummy_hash


def _validate_email(email: str) -> None:
    """Validate a normalized email: non-empty, bounded, one @ and a dotted domain."""
    if not email:
        raise InvalidInputError("Email is required")
    if len(email) > EMAIL_MAX_LENGTH:
        raise InvalidInputError(f"Email must not exceed {EMAIL_MAX_LENGTH} characters")
    if not EMAIL_PATTERN.match(email):
        raise InvalidInputError("Email is not a valid address")


def _validate_password(password: str, min_length: int) -> None:
    """Validate password: at least min_length chars, at most 72 UTF-8 bytes."""
    if not password:
        raise InvalidInputError("Password is required")
    if len(password) < min_length:
        raise InvalidInputError(f"Password must be at least {min_length} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise InvalidInputError(f"Password must not exceed {PASSWORD_MAX_BYTES} bytes when encoded")
