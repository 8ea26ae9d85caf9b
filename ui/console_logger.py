"""Line-oriented request logger for headless deployments."""

from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from core.config import Config
from core.cors import CorsPolicy
from ui.log_utils import target_host, write_cli_log, write_forward_log, write_incoming_log


class ConsoleLogger:
    """Print one line per event instead of a live dashboard."""

    def __init__(
        self,
        config: Config,
        console: Console | None = None,
        log_root: Path | None = None,
    ):
        self._console = console or Console()
        self._policy = CorsPolicy(config.cors)
        self._log_root = log_root or Path(config.logging.log_dir)
        self._write_files = config.logging.write_files

    def log_incoming(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        body: Any,
        *,
        client: str | None = None,
    ) -> None:
        self._print(escape(f"{method} {path} - {client or '?'}"))
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
        host = target_host(target_url)
        note = ""
        if origin and not self._policy.is_allowed(origin):
            note = " [yellow](origin not listed)[/yellow]"
        colour = "red" if status >= 500 else "yellow" if status >= 400 else "green"
        code = f" ({escape(error_code)})" if error_code else ""
        self._print(
            f"FORWARD {escape(endpoint)} -> {host} [{colour}]{status}[/{colour}]{code} "
            f"{duration * 1000:.0f}ms origin={escape(origin or '-')}{note}"
        )
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
                "FORWARD", f"{endpoint} -> {host}", log_root=self._log_root, status=status
            )

    def log_error(self, endpoint: str, status: int, message: str) -> None:
        self._print(f"[red]ERROR[/red] {escape(endpoint)} {status}: {escape(message[:200])}")
        if self._write_files:
            write_cli_log(
                "ERROR", message[:200], log_root=self._log_root, endpoint=endpoint, status=status
            )

    def _print(self, line: str) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        self._console.print(f"[dim]{timestamp}[/dim] {line}", highlight=False)
