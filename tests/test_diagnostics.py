"""Tests for the relay diagnostics."""

import io
import json

import httpx
from rich.console import Console

from diagnostics import print_report, run_checks

ORIGIN = "https://smart-simulator.netlify.app"


def _fake_relay(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/health":
        return httpx.Response(200, json={"status": "ok"})
    cors = {"Access-Control-Allow-Origin": ORIGIN, "Access-Control-Allow-Credentials": "true"}
    if request.method == "OPTIONS":
        cors.update(
            {
                "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
                "Access-Control-Allow-Headers": "content-type",
            }
        )
        return httpx.Response(200, headers=cors)
    return httpx.Response(200, json={"echo": json.loads(request.content)}, headers=cors)


def test_checks_run_in_order_and_collect_headers():
    results = run_checks(
        "http://relay.test",
        ORIGIN,
        "https://abc.supabase.co/functions/v1/fn",
        transport=httpx.MockTransport(_fake_relay),
    )
    assert [r.name for r in results] == ["health", "preflight", "forward"]
    assert all(r.status == 200 for r in results)
    assert results[1].headers["access-control-allow-origin"] == ORIGIN
    assert results[2].body["echo"]["target_url"].endswith("/functions/v1/fn")

    out = io.StringIO()
    assert print_report(results, ORIGIN, Console(file=out, width=200)) is True
    assert "MISSING" not in out.getvalue()


def test_forward_is_skipped_without_target():
    results = run_checks("http://relay.test", ORIGIN, transport=httpx.MockTransport(_fake_relay))
    assert [r.name for r in results] == ["health", "preflight"]


def test_missing_cors_headers_are_reported():
    def bare(request):
        return httpx.Response(200)

    results = run_checks("http://relay.test", ORIGIN, transport=httpx.MockTransport(bare))
    out = io.StringIO()
    print_report(results, ORIGIN, Console(file=out, width=200))
    assert "MISSING" in out.getvalue()
    assert "is not granted" in out.getvalue()


def test_unreachable_relay_gets_a_hint():
    def refused(request):
        raise httpx.ConnectError("refused", request=request) from ConnectionRefusedError(
            111, "Connection refused"
        )

    results = run_checks("http://relay.test", ORIGIN, transport=httpx.MockTransport(refused))
    assert all(not r.reachable for r in results)
    assert results[0].error_code == "ECONNREFUSED"
    assert "might not be running" in results[0].hint

    out = io.StringIO()
    assert print_report(results, ORIGIN, Console(file=out, width=200)) is False
    assert "Not reachable" in out.getvalue()
