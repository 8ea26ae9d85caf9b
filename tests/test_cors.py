"""Tests for CorsPolicy."""

from core.config import CorsSettings
from core.cors import CorsPolicy

ORIGINS = ("https://a.example", "http://localhost:3000")


def _policy(**kwargs) -> CorsPolicy:
    return CorsPolicy(CorsSettings(allowed_origins=ORIGINS, **kwargs))


def test_every_listed_origin_is_echoed():
    policy = _policy()
    for origin in ORIGINS:
        headers = policy.preflight_headers(origin, "POST", "content-type")
        assert headers["Access-Control-Allow-Origin"] == origin
        assert headers["Vary"] == "Origin"


def test_unlisted_and_missing_origins_get_no_grant():
    policy = _policy()
    for origin in ("https://b.example", "https://a.example.evil", "null", "", None):
        assert "Access-Control-Allow-Origin" not in policy.preflight_headers(origin)
        assert "Access-Control-Allow-Origin" not in policy.response_headers(origin)


def test_origin_match_is_exact():
    policy = _policy()
    assert not policy.is_allowed("https://A.example")
    assert not policy.is_allowed("https://a.example/")


def test_required_methods_and_headers_are_always_present():
    policy = _policy(allowed_methods=("GET",), allowed_headers=("X-Meter",))
    headers = policy.preflight_headers("https://a.example")
    methods = headers["Access-Control-Allow-Methods"].split(", ")
    assert {"GET", "POST", "OPTIONS"} <= set(methods)
    allowed = headers["Access-Control-Allow-Headers"].split(", ")
    assert "content-type" in allowed
    assert "x-meter" in allowed


def test_requested_values_do_not_change_the_answer():
    policy = _policy()
    plain = policy.preflight_headers("https://a.example")
    asked = policy.preflight_headers("https://a.example", "DELETE", "x-custom")
    assert plain == asked


def test_credentials_header_follows_settings():
    assert "Access-Control-Allow-Credentials" not in _policy(
        allow_credentials=False
    ).response_headers("https://a.example")
    assert _policy().response_headers("https://a.example")[
        "Access-Control-Allow-Credentials"
    ] == "true"


def test_max_age_and_preflight_status():
    policy = _policy(max_age=60, preflight_status=204)
    assert policy.preflight_headers("https://a.example")["Access-Control-Max-Age"] == "60"
    assert policy.preflight_status == 204
