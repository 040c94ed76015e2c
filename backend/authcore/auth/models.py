"""User account and session models for authentication."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field, field_validator


def normalize_email(email: str) -> str:
    """Trim surrounding whitespace and lower-case an email address."""
    return email.strip().lower()


class UserProfile(BaseModel, frozen=True):
    """Outward-facing view of a user. Never carries the password hash."""

    user_id: str
    email: str
    created_at: float


class User(BaseModel, frozen=True):
    """User account stored in the user repository."""

    user_id: str
    email: str
    password_hash: str = Field(repr=False)  # bcrypt hash, "simple$..." in tests
    created_at: float

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password_hash")
    @classmethod
    def _require_password_hash(cls, v: str) -> str:
        if not v:
            raise ValueError("Accounts must have a password hash")
        return v

    def to_profile(self) -> UserProfile:
        return UserProfile(user_id=self.user_id, email=self.email, created_at=self.created_at)


@dataclass
class Session:
    """Server-side session for an authenticated user."""

    token: str  # stored in cookie
    user_id: str
    created_at: float  # time.time()
    expires_at: float  # time.time() + TTL
    http_only: bool = True
    secure: bool = False

    @property
    def ttl_seconds(self) -> int:
        return max(0, round(self.expires_at - self.created_at))


@dataclass
class AuthResult:
    """Outcome of signup or login: the user's profile and the issued session.

    ``session`` is None when signup does not log the user in.
    """

    user: UserProfile
    session: Session | None

    @property
    def token(self) -> str | None:
        return self.session.token if self.session is not None else None
