"""Check a running relay and report health, CORS headers and a test forward."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
from rich.console import Console
from rich.table import Table

from services.upstream import classify_transport_error

CORS_HEADERS = (
    "access-control-allow-origin",
    "access-control-allow-methods",
    "access-control-allow-headers",
    "access-control-allow-credentials",
)

HINTS = {
    "ENOTFOUND": "The domain could not be found. Check that the relay is deployed.",
    "ECONNREFUSED": "Connection refused. The relay might not be running.",
    "timeout": "Request timed out. The relay might be slow or unreachable.",
    "certificate": "TLS certificate problem on the relay's host.",
    "connection_error": "The relay could not be reached.",
}


@dataclass
class CheckResult:
    """Outcome of one check request."""

    name: str
    status: int | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    error_code: str | None = None

    @property
    def reachable(self) -> bool:
        return self.status is not None

    @property
    def hint(self) -> str | None:
        return HINTS.get(self.error_code) if self.error_code else None


def run_checks(
    base_url: str,
    origin: str,
    target_url: str | None = None,
    *,
    endpoint: str = "supabase-function",
    timeout: float = 10.0,
    transport: httpx.BaseTransport | None = None,
) -> list[CheckResult]:
    """Run health, preflight and (with a target) forward checks in order."""
    results = []
    with httpx.Client(base_url=base_url, timeout=timeout, transport=transport) as client:
        results.append(_check(client, "health", "GET", "/health"))
        results.append(
            _check(
                client,
                "preflight",
                "OPTIONS",
                f"/proxy/{endpoint}",
                headers={
                    "Origin": origin,
                    "Access-Control-Request-Method": "POST",
                    "Access-Control-Request-Headers": "content-type",
                },
            )
        )
        if target_url:
            results.append(
                _check(
                    client,
                    "forward",
                    "POST",
                    f"/proxy/{endpoint}",
                    headers={"Origin": origin},
                    json={
                        "target_url": target_url,
                        "user_id": "diagnostic-user",
                        "meter_number": "diagnostic-meter",
                        "kwh_consumed": 15.75,
                        "timestamp": datetime.now(UTC).isoformat(),
                    },
                )
            )
    return results


def _check(
    client: httpx.Client,
    name: str,
    method: str,
    path: str,
    **kwargs: Any,
) -> CheckResult:
    try:
        response = client.request(method, path, **kwargs)
    except httpx.RequestError as e:
        return CheckResult(name=name, error_code=classify_transport_error(e), body=str(e))

    try:
        body = response.json()
    except ValueError:
        body = response.text
    return CheckResult(
        name=name,
        status=response.status_code,
        headers={k.lower(): v for k, v in response.headers.items()},
        body=body,
    )


def print_report(results: list[CheckResult], origin: str, console: Console | None = None) -> bool:
    """Print results; return True when every check reached the relay."""
    console = console or Console()
    ok = True
    for result in results:
        console.print(f"\n[bold]{result.name.title()}[/bold]")
        if not result.reachable:
            ok = False
            console.print(f"  [red]Not reachable[/red] ({result.error_code})")
            if result.hint:
                console.print(f"  [dim]{result.hint}[/dim]")
            continue

        colour = "green" if result.status < 400 else "red"
        console.print(f"  Status: [{colour}]{result.status}[/{colour}]")

        if result.name in ("preflight", "forward"):
            table = Table(show_header=False, box=None, padding=(0, 2))
            for header in CORS_HEADERS:
                value = result.headers.get(header)
                table.add_row(header, value if value else "[red]MISSING[/red]")
            console.print(table)
            granted = result.headers.get("access-control-allow-origin")
            if granted != origin:
                console.print(f"  [yellow]Origin {origin} is not granted by the relay[/yellow]")

        if result.body not in (None, ""):
            console.print("  Response:", result.body)
    return ok
