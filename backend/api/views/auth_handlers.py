"""Auth endpoints: registration, login, logout, session status, password change."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError
from starlette.responses import JSONResponse

from authcore.auth.errors import InvalidInputError

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from authcore.auth.models import AuthResult, Session, UserProfile
    from authcore.auth.service import AuthService
    from authcore.auth.settings import AuthSettings


M = TypeVar("M", bound=BaseModel)


class SignupRequest(BaseModel):
    email: str
    password: str
    password_confirmation: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


async def _parse_json_body(request: Request, model: type[M]) -> M:
    """Parse and validate a JSON object body. Raise InvalidInputError on failure."""
    try:
        body = await request.json()
    except (ValueError, json.JSONDecodeError) as e:
        raise InvalidInputError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise InvalidInputError("JSON body must be an object")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        fields = ", ".join(sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]}))
        raise InvalidInputError(f"Missing or invalid fields: {fields}") from e


def _user_json(profile: UserProfile) -> dict:
    return profile.model_dump()


def _set_session_cookie(response: Response, session: Session, auth_settings: AuthSettings) -> None:
    response.set_cookie(
        key=auth_settings.cookie_name,
        value=session.token,
        max_age=session.ttl_seconds,
        httponly=session.http_only,
        secure=session.secure,
        samesite=auth_settings.cookie_samesite,
        path="/",
    )


def _auth_response(result: AuthResult, auth_settings: AuthSettings, status_code: int) -> Response:
    logged_in = result.session is not None
    response = JSONResponse({"logged_in": logged_in, "user": _user_json(result.user)}, status_code=status_code)
    if result.session is not None:
        _set_session_cookie(response, result.session, auth_settings)
    return response


async def register(request: Request) -> Response:
    """POST /registrations - create account and, by default, log it in."""
    auth_service: AuthService = request.app.state.auth_service
    body = await _parse_json_body(request, SignupRequest)
    if body.password_confirmation is not None and body.password != body.password_confirmation:
        raise InvalidInputError("Passwords do not match")

    result = await auth_service.signup(body.email, body.password)
    return _auth_response(result, request.app.state.auth_settings, status_code=201)


async def login(request: Request) -> Response:
    """POST /sessions - validate credentials and set the session cookie."""
    auth_service: AuthService = request.app.state.auth_service
    body = await _parse_json_body(request, LoginRequest)

    result = await auth_service.login(body.email, body.password)
    return _auth_response(result, request.app.state.auth_settings, status_code=200)


async def logout(request: Request) -> Response:
    """DELETE /logout - destroy the session and clear the cookie. Always succeeds."""
    auth_service: AuthService = request.app.state.auth_service
    auth_settings: AuthSettings = request.app.state.auth_settings

    auth_service.logout(request.cookies.get(auth_settings.cookie_name))
    response = JSONResponse({"logged_out": True})
    response.delete_cookie(
        key=auth_settings.cookie_name,
        path="/",
        secure=auth_settings.cookie_secure,
        httponly=True,
        samesite=auth_settings.cookie_samesite,
    )
    return response


async def logged_in(request: Request) -> Response:
    """GET /logged_in - report session status without failing when anonymous."""
    if not request.user.is_authenticated:
        return JSONResponse({"logged_in": False})
    return JSONResponse({"logged_in": True, "user": _user_json(request.user.profile)})


async def me(request: Request) -> Response:
    """GET /me - the current user's profile."""
    return JSONResponse({"user": _user_json(request.user.profile)})


async def change_password(request: Request) -> Response:
    """PUT /password - change password, revoke all sessions, issue a new cookie."""
    auth_service: AuthService = request.app.state.auth_service
    body = await _parse_json_body(request, ChangePasswordRequest)

    session = await auth_service.change_password(request.user.token, body.current_password, body.new_password)
    response = JSONResponse({"password_changed": True})
    _set_session_cookie(response, session, request.app.state.auth_settings)
    return response
