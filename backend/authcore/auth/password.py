"""Password hashing: protocol, bcrypt (production), and salted SHA-256 (tests).

BcryptHasher is CPU-bound (~100ms per call at the default cost) and runs off
the event loop with anyio.to_thread.run_sync() so concurrent requests are not
blocked while a password is hashed or checked.

SimpleHasher salts and hashes with SHA-256 under a "simple$" prefix for
instant hashing in tests. It is not suitable for production use.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Protocol, runtime_checkable

import bcrypt
from anyio import to_thread

DEFAULT_BCRYPT_ROUNDS = 12


@runtime_checkable
class PasswordHasher(Protocol):
    """Hash and verify passwords."""

    async def hash(self, plain: str) -> str: ...

    async def verify(self, plain: str, hashed: str) -> bool: ...


class BcryptHasher:
    """Production hasher using bcrypt (async, off-thread)."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds

    async def hash(self, plain: str) -> str:
        encoded = plain.encode("utf-8")
        salt = bcrypt.gensalt(rounds=self._rounds)
        return await to_thread.run_sync(lambda: bcrypt.hashpw(encoded, salt).decode("utf-8"))

    async def verify(self, plain: str, hashed: str) -> bool:
        """Return False for malformed hashes rather than propagating a ValueError."""
        encoded_plain = plain.encode("utf-8")
        encoded_hash = hashed.encode("utf-8")
        try:
            return await to_thread.run_sync(lambda: bcrypt.checkpw(encoded_plain, encoded_hash))
        except ValueError:
            return False


_SIMPLE_PREFIX = "simple$"


def _simple_digest(salt: str, plain: str) -> str:
    return hashlib.sha256(f"{salt}:{plain}".encode()).hexdigest()


class SimpleHasher:
    """Fast salted SHA-256 hasher for tests. Format: ``simple$<salt>$<hexdigest>``."""

    async def hash(self, plain: str) -> str:
        salt = secrets.token_hex(8)
        return f"{_SIMPLE_PREFIX}{salt}${_simple_digest(salt, plain)}"

    async def verify(self, plain: str, hashed: str) -> bool:
        if not hashed.startswith(_SIMPLE_PREFIX):
            return False
        salt, sep, digest = hashed.removeprefix(_SIMPLE_PREFIX).partition("$")
        if not sep:
            return False
        return hmac.compare_digest(digest, _simple_digest(salt, plain))


def get_hasher(name: str = "bcrypt") -> PasswordHasher:
    """Return a PasswordHasher by name ("bcrypt" or "simple")."""
    if name == "bcrypt":
        return BcryptHasher()
    if name == "simple":
        return SimpleHasher()
    raise ValueError(f"Unknown password hasher: {name!r}")
