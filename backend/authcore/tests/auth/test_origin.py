"""Tests for the cross-origin policy gate."""

from __future__ import annotations

import pytest

from authcore.auth.errors import MisconfiguredOriginError
from authcore.auth.origin import OriginPolicy

FRONTEND = "http://localhost:3000"


@pytest.fixture
def policy() -> OriginPolicy:
    return OriginPolicy([FRONTEND, "https://app.example.com"])


class TestCheckOrigin:
    def test_exact_match_allowed(self, policy):
        assert policy.check_origin(FRONTEND) is True
        assert policy.check_origin("https://app.example.com") is True

    @pytest.mark.parametrize(
        "origin",
        [
            "https://localhost:3000",  # scheme
            "http://localhost:3001",  # port
            "http://localhost",  # missing port
            "http://localhost:3000/",  # trailing slash
            "https://evil.app.example.com",  # subdomain
            "https://example.com",  # parent domain
            "http://app.example.com",  # scheme downgrade
            "HTTPS://APP.EXAMPLE.COM",  # case
            "null",
        ],
    )
    def test_variations_rejected(self, policy, origin):
        assert policy.check_origin(origin) is False

    def test_missing_origin_rejected(self, policy):
        assert policy.check_origin(None) is False
        assert policy.check_origin("") is False

    def test_empty_allow_list_rejects_everything(self):
        assert OriginPolicy([]).check_origin(FRONTEND) is False


class TestStartupValidation:
    def test_wildcard_with_credentials_is_fatal(self):
        with pytest.raises(MisconfiguredOriginError, match="credentials"):
            OriginPolicy(["*"], allow_credentials=True)

    def test_wildcard_among_explicit_origins_is_fatal(self):
        with pytest.raises(MisconfiguredOriginError):
            OriginPolicy([FRONTEND, "*"])

    def test_subdomain_wildcard_with_credentials_is_fatal(self):
        with pytest.raises(MisconfiguredOriginError):
            OriginPolicy(["https://*.example.com"])

    def test_partial_wildcard_without_credentials_is_rejected(self):
        with pytest.raises(MisconfiguredOriginError, match="partial wildcards"):
            OriginPolicy(["https://*.example.com"], allow_credentials=False)

    @pytest.mark.parametrize("origin", ["localhost:3000", "ftp://files.example.com", "http://", "example.com"])
    def test_non_origin_entries_rejected(self, origin):
        with pytest.raises(MisconfiguredOriginError, match="scheme://host"):
            OriginPolicy([origin])

    @pytest.mark.parametrize("origin", ["http://localhost:3000/", "http://localhost:3000/app", "http://a.com?x=1"])
    def test_entries_with_path_rejected(self, origin):
        with pytest.raises(MisconfiguredOriginError, match="path"):
            OriginPolicy([origin])

    def test_misconfiguration_is_a_value_error(self):
        with pytest.raises(ValueError):
            OriginPolicy(["*"])


class TestCredentialedMode:
    def test_requires_credentialed_policy(self, policy):
        assert policy.requires_credentialed_policy() is True
        assert OriginPolicy([FRONTEND], allow_credentials=False).requires_credentialed_policy() is False

    def test_response_headers_echo_origin(self, policy):
        headers = policy.response_headers(FRONTEND)

        assert headers["Access-Control-Allow-Origin"] == FRONTEND
        assert headers["Access-Control-Allow-Credentials"] == "true"
        assert headers["Vary"] == "Origin"


class TestAnonymousWildcard:
    def test_wildcard_without_credentials_allows_any_origin(self):
        policy = OriginPolicy(["*"], allow_credentials=False)

        assert policy.check_origin("https://anything.example") is True
        headers = policy.response_headers("https://anything.example")
        assert headers == {"Access-Control-Allow-Origin": "*"}


class TestPreflight:
    def test_allowed_preflight(self, policy):
        headers = policy.preflight_headers(FRONTEND, "POST", "content-type")

        assert headers is not None
        assert headers["Access-Control-Allow-Origin"] == FRONTEND
        assert headers["Access-Control-Allow-Origin"] != "*"
        assert headers["Access-Control-Allow-Credentials"] == "true"
        assert "POST" in headers["Access-Control-Allow-Methods"]
        assert "Content-Type" in headers["Access-Control-Allow-Headers"]
        assert headers["Access-Control-Max-Age"] == "600"

    def test_method_is_case_insensitive(self, policy):
        assert policy.preflight_headers(FRONTEND, "delete") is not None

    def test_disallowed_method(self):
        policy = OriginPolicy([FRONTEND], allow_methods=["GET", "POST"])
        assert policy.preflight_headers(FRONTEND, "DELETE") is None

    def test_disallowed_header(self, policy):
        assert policy.preflight_headers(FRONTEND, "POST", "content-type, x-secret") is None

    def test_header_matching_is_case_insensitive(self, policy):
        assert policy.preflight_headers(FRONTEND, "POST", "Content-Type, ACCEPT") is not None

    def test_disallowed_origin(self, policy):
        assert policy.preflight_headers("https://evil.example", "GET") is None

    def test_custom_max_age(self):
        policy = OriginPolicy([FRONTEND], max_age=30)
        headers = policy.preflight_headers(FRONTEND, "GET")
        assert headers is not None
        assert headers["Access-Control-Max-Age"] == "30"
