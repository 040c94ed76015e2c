"""Session authentication core: credentials, sessions, and the cross-origin gate."""

from authcore.auth.credentials import CredentialStore
from authcore.auth.errors import (
    AuthError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidInputError,
    MisconfiguredOriginError,
    SessionExpiredError,
    SessionNotFoundError,
    TokenCollisionError,
    UnauthenticatedError,
)
from authcore.auth.file_repository import FileUserRepository
from authcore.auth.models import AuthResult, Session, User, UserProfile
from authcore.auth.origin import OriginPolicy
from authcore.auth.password import BcryptHasher, PasswordHasher, SimpleHasher, get_hasher
from authcore.auth.repository import InMemoryUserRepository, UserRepository
from authcore.auth.service import AuthService
from authcore.auth.session_store import SessionStore
from authcore.auth.settings import AuthSettings

__all__ = [
    "AuthError",
    "AuthResult",
    "AuthService",
    "AuthSettings",
    "BcryptHasher",
    "CredentialStore",
    "DuplicateEmailError",
    "FileUserRepository",
    "InMemoryUserRepository",
    "InvalidCredentialsError",
    "InvalidInputError",
    "MisconfiguredOriginError",
    "OriginPolicy",
    "PasswordHasher",
    "Session",
    "SessionExpiredError",
    "SessionNotFoundError",
    "SessionStore",
    "SimpleHasher",
    "TokenCollisionError",
    "UnauthenticatedError",
    "User",
    "UserProfile",
    "UserRepository",
    "get_hasher",
]
