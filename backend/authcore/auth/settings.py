"""Auth settings for the session core and its cookie carrier."""

from typing import Literal, Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from authcore.auth.credentials import PASSWORD_MIN_LENGTH
from authcore.auth.session_store import DEFAULT_SESSION_TTL_SECONDS


class AuthSettings(BaseSettings):
    model_config = {"env_prefix": "AUTH_"}

    # JSON users file; unset keeps users in memory (lost on restart)
    users_file: str | None = None

    # "bcrypt" in production, "simple" for tests
    password_hasher: Literal["bcrypt", "simple"] = "bcrypt"
    password_min_length: int = Field(default=PASSWORD_MIN_LENGTH, ge=1)

    session_ttl_seconds: int = Field(default=DEFAULT_SESSION_TTL_SECONDS, gt=0)

    # Log the user in right after signup
    auto_login_on_signup: bool = True

    cookie_name: str = Field(default="session_id", min_length=1)
    # Cookie Secure flag -- True in production, False for local dev (HTTP)
    cookie_secure: bool = False
    # A frontend on another site needs "none", which browsers only accept with Secure
    cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    @model_validator(mode="after")
    def _validate_samesite(self) -> Self:
        if self.cookie_samesite == "none" and not self.cookie_secure:
            raise ValueError("cookie_samesite='none' requires cookie_secure=True")
        return self
