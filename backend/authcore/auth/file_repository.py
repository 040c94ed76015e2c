"""File-backed user repository storing users as JSON."""

import asyncio
import contextlib
import json
import os
import tempfile
from pathlib import Path

import structlog

from authcore.auth.models import User
from authcore.auth.repository import UserRepository, check_unique, find_by_email, require_user

logger = structlog.get_logger()

_FILE_PERMISSIONS = 0o600  # owner read/write only


class FileUserRepository(UserRepository):
    """File-backed user repository.

    Stores users as JSON in a single file. Loads into memory on first access
    and writes the whole file back on every mutation. An asyncio.Lock
    serializes check-and-write, so concurrent registrations of one email
    cannot both succeed within a single process.

    Limitation: only one process may own the file. Running several API
    workers against the same file would lose writes.
    """

    def __init__(self, file_path: str | Path) -> None:
        self._file_path = Path(file_path)
        self._users: dict[str, User] = {}  # keyed by user_id
        self._lock = asyncio.Lock()
        self._loaded = False

    async def _ensure_loaded(self) -> None:
        """Load users from file on first access."""
        async with self._lock:
            if self._loaded:
                return
            self._load_from_file()
            self._loaded = True

    def _load_from_file(self) -> None:
        """Load users from the JSON file into memory.

        Starts with an empty store when the file does not exist yet.
        Raises on read/parse failures for an existing file so a file we
        could not read is never overwritten.
        """
        self._users = {}

        if not self._file_path.exists():
            return

        try:
            data = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            msg = f"Failed to load users from {self._file_path}"
            raise OSError(msg) from exc

        if not isinstance(data, dict):
            msg = f"Expected JSON object at root in {self._file_path}"
            raise OSError(msg)

        try:
            self._users = {uid: User.model_validate(user_data) for uid, user_data in data.items()}
        except ValueError as exc:
            msg = f"Failed to parse user data from {self._file_path}"
            raise OSError(msg) from exc
        logger.info("loaded users", path=str(self._file_path), count=len(self._users))

    def _save_to_file(self) -> None:
        """Atomically write all users to the JSON file.

        Writes to a temporary file in the same directory, then renames it
        into place. The file holds password hashes, so it is owner-only.
        """
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        data = {uid: user.model_dump() for uid, user in self._users.items()}
        content = json.dumps(data, indent=2).encode("utf-8")

        fd, tmp_path = tempfile.mkstemp(
            dir=self._file_path.parent,
            prefix=".users_",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fchmod(f.fileno(), _FILE_PERMISSIONS)
            Path(tmp_path).replace(self._file_path)
        except BaseException:
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise

    async def create_user(self, user: User) -> None:
        """Add a user. Raises ValueError if user_id or email already exists."""
        await self._ensure_loaded()
        async with self._lock:
            check_unique(self._users, user)
            self._users[user.user_id] = user
            try:
                self._save_to_file()
            except OSError:
                del self._users[user.user_id]
                raise

    async def get_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email."""
        await self._ensure_loaded()
        return find_by_email(self._users, email)

    async def get_by_id(self, user_id: str) -> User | None:
        await self._ensure_loaded()
        return self._users.get(user_id)

    async def update_password_hash(self, user_id: str, password_hash: str) -> User:
        """Replace a user's password hash. Raises KeyError for an unknown user."""
        await self._ensure_loaded()
        async with self._lock:
            previous = require_user(self._users, user_id)
            updated = previous.model_copy(update={"password_hash": password_hash})
            self._users[user_id] = updated
            try:
                self._save_to_file()
            except OSError:
                self._users[user_id] = previous
                raise
            return updated
