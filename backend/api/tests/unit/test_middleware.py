"""Tests for API server middleware."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from api.server.middleware import SECURITY_HEADERS, OriginGateMiddleware, SecurityHeadersMiddleware
from authcore.auth.origin import OriginPolicy

if TYPE_CHECKING:
    from starlette.requests import Request

FRONTEND = "http://localhost:3000"


async def _echo(request: Request) -> JSONResponse:
    return JSONResponse({"method": request.method}, headers={"Vary": "Accept-Encoding"})


def _make_gate_app(policy: OriginPolicy) -> Starlette:
    app = Starlette(routes=[Route("/items", _echo, methods=["GET", "POST", "DELETE"])])
    app.add_middleware(OriginGateMiddleware, policy=policy)
    return app


@pytest.fixture
def gate_client() -> TestClient:
    return TestClient(_make_gate_app(OriginPolicy([FRONTEND])))


class TestOriginGateMiddleware:
    def test_no_origin_passes_through_without_cors_headers(self, gate_client):
        response = gate_client.get("/items")

        assert response.status_code == 200
        assert "access-control-allow-origin" not in response.headers

    def test_allowed_origin_gets_credentialed_cors_headers(self, gate_client):
        response = gate_client.get("/items", headers={"Origin": FRONTEND})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == FRONTEND
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_vary_header_is_merged(self, gate_client):
        response = gate_client.get("/items", headers={"Origin": FRONTEND})

        vary = [v.strip() for v in response.headers["vary"].split(",")]
        assert "Accept-Encoding" in vary
        assert "Origin" in vary

    @pytest.mark.parametrize("origin", ["http://evil.example", "https://localhost:3000", "http://localhost:3000/"])
    def test_disallowed_origin_rejected_before_route(self, gate_client, origin):
        response = gate_client.post("/items", headers={"Origin": origin})

        assert response.status_code == 403
        assert response.json() == {"error": "Origin not allowed"}
        assert "access-control-allow-origin" not in response.headers

    def test_preflight_answered_without_reaching_route(self, gate_client):
        response = gate_client.options(
            "/items",
            headers={
                "Origin": FRONTEND,
                "Access-Control-Request-Method": "DELETE",
                "Access-Control-Request-Headers": "content-type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == FRONTEND
        assert response.headers["access-control-allow-credentials"] == "true"
        assert "DELETE" in response.headers["access-control-allow-methods"]

    def test_preflight_with_disallowed_header(self, gate_client):
        response = gate_client.options(
            "/items",
            headers={
                "Origin": FRONTEND,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "x-not-allowed",
            },
        )

        assert response.status_code == 400
        assert "access-control-allow-origin" not in response.headers

    def test_preflight_from_disallowed_origin(self, gate_client):
        response = gate_client.options(
            "/items",
            headers={"Origin": "http://evil.example", "Access-Control-Request-Method": "GET"},
        )

        assert response.status_code == 403

    def test_plain_options_without_request_method_is_not_a_preflight(self, gate_client):
        response = gate_client.options("/items", headers={"Origin": FRONTEND})

        # Falls through to routing, which does not serve OPTIONS on /items
        assert response.status_code == 405
        assert response.headers["access-control-allow-origin"] == FRONTEND

    def test_anonymous_wildcard_mode(self):
        client = TestClient(_make_gate_app(OriginPolicy(["*"], allow_credentials=False)))

        response = client.get("/items", headers={"Origin": "https://anywhere.example"})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "access-control-allow-credentials" not in response.headers


class TestSecurityHeadersMiddleware:
    def test_headers_added(self):
        app = Starlette(routes=[Route("/items", _echo, methods=["GET"])])
        app.add_middleware(SecurityHeadersMiddleware)
        response = TestClient(app).get("/items")

        for name, value in SECURITY_HEADERS:
            assert response.headers[name.decode()] == value.decode()
