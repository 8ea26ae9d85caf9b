"""Real-time CLI dashboard for relay monitoring."""

from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from core.cors import CorsPolicy
from core.request_types import CLIENT_CLOSED
from ui.log_utils import (
    summarize_payload,
    target_host,
    write_cli_log,
    write_forward_log,
    write_incoming_log,
)

console = Console()


class ForwardInfo:
    """Info about a single forwarded request."""

    def __init__(
        self,
        endpoint: str,
        origin: str | None,
        host: str,
        status: int,
        duration: float,
        summary: str,
        timestamp: datetime,
    ):
        self.endpoint = endpoint
        self.origin = origin or "-"
        self.host = host
        self.status = status
        self.duration = duration
        self.summary = summary
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing forwarded requests and errors."""

    def __init__(self, config: Config, log_root: Path | None = None):
        self.config = config
        self._policy = CorsPolicy(config.cors)
        self._log_root = log_root or Path(config.logging.log_dir)
        self._write_files = config.logging.write_files
        self._lock = Lock()
        self._forwards: list[ForwardInfo] = []
        self._max_forwards = 8
        self._counts = {"forwarded": 0, "failed": 0, "blocked_origin": 0}
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_incoming(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        body: Any,
        *,
        client: str | None = None,
    ) -> None:
        if self._write_files:
            write_incoming_log(method, path, headers, body, client=client, log_root=self._log_root)

    def log_forward(
        self,
        endpoint: str,
        target_url: str,
        payload: dict[str, Any],
        *,
        origin: str | None,
        status: int,
        duration: float,
        error_code: str | None = None,
    ) -> None:
        """Record a completed forward.

        Only failures the relay synthesized (timeout, DNS, refused, TLS) count
        as unreachable; downstream 5xx answers are relayed results.
        """
        with self._lock:
            self._counts["forwarded"] += 1
            if error_code and error_code != CLIENT_CLOSED:
                self._counts["failed"] += 1
            if origin and not self._policy.is_allowed(origin):
                self._counts["blocked_origin"] += 1

            info = ForwardInfo(
                endpoint=endpoint,
                origin=origin,
                host=target_host(target_url),
                status=status,
                duration=duration,
                summary=summarize_payload(payload),
                timestamp=datetime.now(),
            )
            self._forwards.insert(0, info)
            self._forwards = self._forwards[: self._max_forwards]

            if self._write_files:
                write_forward_log(
                    endpoint,
                    target_url,
                    payload,
                    origin=origin,
                    status=status,
                    duration=duration,
                    log_root=self._log_root,
                )
                write_cli_log(
                    "FORWARD",
                    f"{endpoint} -> {info.host}",
                    log_root=self._log_root,
                    status=status,
                    origin=info.origin,
                )

            self._refresh()

    def log_error(self, endpoint: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{endpoint} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            if self._write_files:
                write_cli_log(
                    "ERROR", message[:200], log_root=self._log_root, endpoint=endpoint, status=status
                )

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["body"].split_row(
            Layout(name="latest", ratio=1),
            Layout(name="forwards", ratio=2),
        )

        layout["header"].update(self._build_header())
        layout["latest"].update(self._build_latest_panel())
        layout["forwards"].update(self._build_forwards_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Meter Relay", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Forwarded: {self._counts['forwarded']}", style="green")
        stats.append("  |  ")
        stats.append(f"Unreachable: {self._counts['failed']}", style="red")
        stats.append("  |  ")
        stats.append(f"Unlisted origins: {self._counts['blocked_origin']}", style="yellow")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.server.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_latest_panel(self) -> Panel:
        """Build panel describing the most recent forward."""
        if self._forwards:
            latest = self._forwards[0]
            content = Table.grid(padding=(0, 1))
            content.add_column()
            content.add_column()

            content.add_row("[bold]Endpoint:[/bold]", latest.endpoint)
            content.add_row("[bold]Target:[/bold]", latest.host)
            content.add_row("[bold]Origin:[/bold]", latest.origin)
            content.add_row("[bold]Status:[/bold]", _styled_status(latest.status))
            content.add_row("[bold]Payload:[/bold]", latest.summary)
            content.add_row(
                "[bold]Time:[/bold]",
                f"{latest.timestamp.strftime('%H:%M:%S')} ({latest.duration * 1000:.0f} ms)",
            )
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[blue]Latest[/blue]", border_style="blue")

    def _build_forwards_panel(self) -> Panel:
        """Build recent forwards table."""
        if self._forwards:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Endpoint", width=20)
            table.add_column("Origin", ratio=2)
            table.add_column("Status", width=6)
            table.add_column("ms", width=6, justify="right")

            for fw in self._forwards:
                table.add_row(
                    fw.timestamp.strftime("%H:%M:%S"),
                    fw.endpoint[:20],
                    fw.origin,
                    _styled_status(fw.status),
                    f"{fw.duration * 1000:.0f}",
                )

            content = table
        else:
            content = Text("No forwarded requests yet...", style="dim")

        return Panel(content, title="[magenta]Recent forwards[/magenta]", border_style="magenta")

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"POST http://localhost:{self.config.server.port}/proxy/<endpoint> "
                "with { target_url, ...reading }",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")


def _styled_status(status: int) -> Text:
    if status >= 500:
        style = "red"
    elif status >= 400:
        style = "yellow"
    else:
        style = "green"
    return Text(str(status), style=style)
