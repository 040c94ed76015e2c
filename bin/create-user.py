"""Register a user account in the configured users file.

Usage: uv run python bin/create-user.py <email>

The password is prompted for twice and never echoed. Requires
AUTH_USERS_FILE so the account outlives this process.
"""

import asyncio
import getpass
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from authcore.auth import AuthError, AuthSettings, CredentialStore, FileUserRepository, get_hasher


async def main() -> None:
    if len(sys.argv) != 2:
        print(f"Usage: {sys.argv[0]} <email>")
        sys.exit(1)

    email = sys.argv[1]
    auth_settings = AuthSettings()
    if not auth_settings.users_file:
        print("Error: AUTH_USERS_FILE must be set", file=sys.stderr)
        sys.exit(1)

    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Confirm password: "):
        print("Error: passwords do not match", file=sys.stderr)
        sys.exit(1)

    credentials = CredentialStore(
        FileUserRepository(auth_settings.users_file),
        password_hasher=get_hasher(auth_settings.password_hasher),
        password_min_length=auth_settings.password_min_length,
    )
    try:
        user = await credentials.register(email, password)
    except AuthError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Created user {user.email} ({user.user_id})")


if __name__ == "__main__":
    asyncio.run(main())
