"""Cross-origin policy gate for credentialed (cookie-bearing) requests.

The allow-list is fixed when the policy is built. In credentialed mode a
wildcard entry is a fatal misconfiguration: browsers refuse
``Access-Control-Allow-Origin: *`` together with credentials, so the
policy refuses to start instead of failing on every request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from authcore.auth.errors import MisconfiguredOriginError

if TYPE_CHECKING:
    from collections.abc import Iterable

WILDCARD = "*"

DEFAULT_ALLOW_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD")
DEFAULT_ALLOW_HEADERS = ("Accept", "Content-Type", "X-Requested-With")
DEFAULT_MAX_AGE_SECONDS = 600

_ALLOWED_SCHEMES = {"http", "https"}


class OriginPolicy:
    """Exact-match origin allow-list plus CORS response headers."""

    def __init__(
        self,
        allowed_origins: Iterable[str],
        *,
        allow_credentials: bool = True,
        allow_methods: Iterable[str] = DEFAULT_ALLOW_METHODS,
        allow_headers: Iterable[str] = DEFAULT_ALLOW_HEADERS,
        max_age: int = DEFAULT_MAX_AGE_SECONDS,
    ) -> None:
        origins = frozenset(allowed_origins)
        _validate_origins(origins, allow_credentials=allow_credentials)
        self._allow_any = WILDCARD in origins
        self._origins = origins - {WILDCARD}
        self._allow_credentials = allow_credentials
        self._allow_methods = tuple(m.upper() for m in allow_methods)
        self._allow_headers = tuple(allow_headers)
        self._allow_headers_lower = frozenset(h.lower() for h in self._allow_headers)
        self._max_age = max_age

    @property
    def allowed_origins(self) -> frozenset[str]:
        return self._origins

    def requires_credentialed_policy(self) -> bool:
        """True when cross-origin requests may carry cookies."""
        return self._allow_credentials

    def check_origin(self, origin: str | None) -> bool:
        """Return True iff origin is exactly on the allow-list.

        No subdomain, scheme, port, or trailing-slash variations match.
        """
        if not origin:
            return False
        if self._allow_any:
            return True
        return origin in self._origins

    def response_headers(self, origin: str) -> dict[str, str]:
        """CORS headers for an actual response to an allowed origin."""
        if self._allow_any:
            headers = {"Access-Control-Allow-Origin": WILDCARD}
        else:
            headers = {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
        if self._allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers

    def preflight_headers(
        self,
        origin: str,
        request_method: str,
        request_headers: str | None = None,
    ) -> dict[str, str] | None:
        """Answer a preflight, independent of authentication.

        Returns None when the origin, the requested method, or any requested
        header is not allowed.
        """
        if not self.check_origin(origin):
            return None
        if request_method.upper() not in self._allow_methods:
            return None
        requested = [h.strip().lower() for h in (request_headers or "").split(",") if h.strip()]
        if any(h not in self._allow_headers_lower for h in requested):
            return None

        headers = self.response_headers(origin)
        headers["Access-Control-Allow-Methods"] = ", ".join(self._allow_methods)
        if self._allow_headers:
            headers["Access-Control-Allow-Headers"] = ", ".join(self._allow_headers)
        headers["Access-Control-Max-Age"] = str(self._max_age)
        return headers


def _validate_origins(origins: frozenset[str], *, allow_credentials: bool) -> None:
    """Reject wildcards under credentials and anything that is not a bare origin."""
    for origin in sorted(origins):
        if WILDCARD in origin:
            if allow_credentials:
                msg = (
                    f"Origin {origin!r}: wildcard origins cannot be combined with credentials; "
                    "list the allowed origins explicitly"
                )
                raise MisconfiguredOriginError(msg)
            if origin != WILDCARD:
                raise MisconfiguredOriginError(f"Origin {origin!r}: partial wildcards are not supported")
            continue
        parts = urlsplit(origin)
        if parts.scheme not in _ALLOWED_SCHEMES or not parts.netloc:
            raise MisconfiguredOriginError(f"Origin {origin!r} must look like scheme://host[:port]")
        if parts.path or parts.query or parts.fragment:
            raise MisconfiguredOriginError(f"Origin {origin!r} must not include a path, query, or fragment")
