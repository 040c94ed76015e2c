from __future__ import annotations

import contextlib
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import structlog
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from api.auth.backend import SessionCookieBackend
from api.auth.policy import collect_protected_api_paths, protected_api, public_route, validate_route_auth_policy
from api.server.middleware import OriginGateMiddleware, SecurityHeadersMiddleware
from api.server.settings import ApiServerSettings
from api.views.auth_handlers import change_password, logged_in, login, logout, me, register
from authcore.auth import (
    AuthError,
    AuthService,
    AuthSettings,
    CredentialStore,
    DuplicateEmailError,
    FileUserRepository,
    InMemoryUserRepository,
    InvalidCredentialsError,
    InvalidInputError,
    OriginPolicy,
    SessionStore,
    UnauthenticatedError,
    get_hasher,
)
from authcore.logging import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from starlette.requests import Request

    from authcore.auth.repository import UserRepository

logger = structlog.get_logger()

# Boundary mapping from core error kinds to HTTP status codes.
_AUTH_ERROR_STATUS: dict[type[AuthError], HTTPStatus] = {
    InvalidInputError: HTTPStatus.UNPROCESSABLE_ENTITY,
    DuplicateEmailError: HTTPStatus.CONFLICT,
    InvalidCredentialsError: HTTPStatus.UNAUTHORIZED,
    UnauthenticatedError: HTTPStatus.UNAUTHORIZED,
}


def auth_error_status(exc: AuthError) -> HTTPStatus:
    """Status for a core error; unexpected AuthError kinds are server errors."""
    for error_type, status in _AUTH_ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR


async def _auth_error_handler(_request: Request, exc: Exception) -> Response:
    auth_exc = cast("AuthError", exc)
    status = auth_error_status(auth_exc)
    if status == HTTPStatus.INTERNAL_SERVER_ERROR:
        logger.error("unhandled auth error", error_type=type(exc).__name__)
        return JSONResponse({"error": "Internal server error"}, status_code=status)
    return JSONResponse({"error": str(auth_exc)}, status_code=status)


def _make_http_error_handler(
    protected_api_paths: set[str],
) -> Callable[[Request, Exception], Awaitable[Response]]:
    """Build an HTTPException handler that rewrites 401s on protected JSON endpoints."""

    async def _http_error_handler(request: Request, exc: Exception) -> Response:
        http_exc = cast("HTTPException", exc)
        if http_exc.status_code == HTTPStatus.UNAUTHORIZED and request.url.path in protected_api_paths:
            return JSONResponse({"error": "Authentication required"}, status_code=HTTPStatus.UNAUTHORIZED)
        if http_exc.status_code in {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}:
            return Response(status_code=http_exc.status_code, headers=http_exc.headers)
        return PlainTextResponse(http_exc.detail or "", status_code=http_exc.status_code, headers=http_exc.headers)

    return _http_error_handler


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def build_user_repository(auth_settings: AuthSettings) -> UserRepository:
    if auth_settings.users_file:
        return FileUserRepository(auth_settings.users_file)
    logger.warning("AUTH_USERS_FILE not set, users are kept in memory only")
    return InMemoryUserRepository()


def build_origin_policy(settings: ApiServerSettings) -> OriginPolicy:
    """Build the cross-origin gate. Raises MisconfiguredOriginError on a bad allow-list."""
    return OriginPolicy(
        settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )


def create_app(
    settings: ApiServerSettings | None = None,
    auth_settings: AuthSettings | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ApiServerSettings()
    if auth_settings is None:  # pragma: no cover
        auth_settings = AuthSettings()

    # Fails fast: a wildcard origin with credentials never serves a request.
    origin_policy = build_origin_policy(settings)

    routes = [
        # Protected JSON routes (return 401 JSON when unauthenticated)
        Route("/me", protected_api(me), methods=["GET"], name="me"),
        Route("/password", protected_api(change_password), methods=["PUT"], name="change_password"),
        # Public routes
        Route("/health", public_route(health), methods=["GET"], name="health"),
        Route("/registrations", public_route(register), methods=["POST"], name="register"),
        Route("/sessions", public_route(login), methods=["POST"], name="login"),
        Route("/logout", public_route(logout), methods=["DELETE"], name="logout"),
        Route("/logged_in", public_route(logged_in), methods=["GET"], name="logged_in"),
    ]

    validate_route_auth_policy(routes)
    protected_api_paths = collect_protected_api_paths(routes)

    credentials = CredentialStore(
        build_user_repository(auth_settings),
        password_hasher=get_hasher(auth_settings.password_hasher),
        password_min_length=auth_settings.password_min_length,
    )
    session_store = SessionStore(default_ttl_seconds=auth_settings.session_ttl_seconds)
    auth_service = AuthService(
        credentials,
        session_store,
        session_ttl_seconds=auth_settings.session_ttl_seconds,
        auto_login_on_signup=auth_settings.auto_login_on_signup,
        cookie_secure=auth_settings.cookie_secure,
    )

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        session_store.start_cleanup()
        yield
        await session_store.stop_cleanup()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            HTTPException: _make_http_error_handler(protected_api_paths),
            AuthError: _auth_error_handler,
        },
    )
    # Last added runs first: security headers, then the origin gate, then auth.
    app.add_middleware(
        AuthenticationMiddleware,  # type: ignore[arg-type]
        backend=SessionCookieBackend(auth_service, cookie_name=auth_settings.cookie_name),
    )
    app.add_middleware(OriginGateMiddleware, policy=origin_policy)  # type: ignore[arg-type]
    app.add_middleware(SecurityHeadersMiddleware)  # type: ignore[arg-type]

    app.state.settings = settings
    app.state.auth_settings = auth_settings
    app.state.origin_policy = origin_policy
    app.state.session_store = session_store
    app.state.auth_service = auth_service

    logger.info(
        "api server ready",
        cors_origins=sorted(origin_policy.allowed_origins),
        credentialed=origin_policy.requires_credentialed_policy(),
    )
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory api.server.app:get_app."""
    s = ApiServerSettings()
    auth = AuthSettings()
    setup_logging(log_dir=s.log_dir)
    return create_app(settings=s, auth_settings=auth)
