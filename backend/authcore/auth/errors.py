"""Error taxonomy for the authentication core.

Authentication failures carry fixed messages so callers cannot tell an unknown
email from a wrong password, or a missing session from an expired one.
"""


class AuthError(Exception):
    """Authentication or authorization failure."""


class InvalidInputError(AuthError):
    """Email or password failed validation."""


class DuplicateEmailError(AuthError):
    """An account with this email already exists."""


class InvalidCredentialsError(AuthError):
    """Email/password pair did not verify."""

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class UnauthenticatedError(AuthError):
    """No live session for the presented token."""

    def __init__(self) -> None:
        super().__init__("Authentication required")


class SessionNotFoundError(AuthError):
    """Token is not known to the session store."""


class SessionExpiredError(AuthError):
    """Token was known but its session has expired."""


class TokenCollisionError(AuthError):
    """A freshly generated token matched a live session."""


class MisconfiguredOriginError(ValueError):
    """Origin allow-list is invalid for the configured CORS mode.

    Raised while building the policy at startup, never per request.
    """
