"""ASGI middleware for the API server."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse, PlainTextResponse

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from authcore.auth.origin import OriginPolicy

logger = structlog.get_logger()

SECURITY_HEADERS: list[tuple[bytes, bytes]] = [
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"DENY"),
    (b"cache-control", b"no-store"),
]


class OriginGateMiddleware:
    """Enforce the cross-origin policy before any route or auth code runs.

    - No ``Origin`` header: passed through without CORS headers.
    - Origin not on the allow-list: 403 JSON, the request never reaches auth.
    - Preflight (OPTIONS + Access-Control-Request-Method): answered here
      from the policy alone, 200 when allowed and 400 otherwise.
    - Anything else: passed through with CORS headers added to the response.
    """

    def __init__(self, app: ASGIApp, *, policy: OriginPolicy) -> None:
        self.app = app
        self._policy = policy

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        origin = headers.get("origin")
        if origin is None:
            await self.app(scope, receive, send)
            return

        if not self._policy.check_origin(origin):
            logger.info("origin rejected", origin=origin, path=scope["path"])
            response = JSONResponse({"error": "Origin not allowed"}, status_code=403)
            await response(scope, receive, send)
            return

        request_method = headers.get("access-control-request-method")
        if scope["method"] == "OPTIONS" and request_method is not None:
            await self._preflight(origin, request_method, headers)(scope, receive, send)
            return

        cors_headers = self._policy.response_headers(origin)

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                for name, value in cors_headers.items():
                    if name == "Vary":
                        response_headers.add_vary_header(value)
                    else:
                        response_headers[name] = value
            await send(message)

        await self.app(scope, receive, send_with_cors)

    def _preflight(self, origin: str, request_method: str, headers: Headers) -> PlainTextResponse:
        cors_headers = self._policy.preflight_headers(
            origin,
            request_method,
            headers.get("access-control-request-headers"),
        )
        if cors_headers is None:
            logger.info("preflight rejected", origin=origin, method=request_method)
            return PlainTextResponse("Disallowed CORS preflight", status_code=400, headers={"Vary": "Origin"})
        return PlainTextResponse("OK", status_code=200, headers=cors_headers)


class SecurityHeadersMiddleware:
    """Inject standard security headers into every HTTP response.

    Responses are JSON carrying account data, so they are never cached.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.extend(SECURITY_HEADERS)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_headers)
