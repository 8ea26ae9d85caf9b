"""CLI entry point for meter-relay."""

import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console

from app import create_app
from core.config import config_path, load_config, validate_config
from core.exceptions import ConfigurationError
from diagnostics import print_report, run_checks
from ui.console_logger import ConsoleLogger
from ui.dashboard import Dashboard
from ui.log_utils import clear_logs, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(1)
    args = sys.argv[1:]

    # Handle CLI arguments
    if args:
        arg = args[0]

        if arg == "--check":
            sys.exit(_run_check(args[1:], config))

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {config_path()}")
            console.print(f"[bold]Logs:[/bold] {Path(config.logging.log_dir).resolve()}")
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

        if arg != "--headless":
            console.print(f"[red][ERROR][/red] Unknown option {arg}")
            _print_help()
            sys.exit(2)

    headless = "--headless" in args
    log_root = Path(config.logging.log_dir)

    try:
        validate_config(config)
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        console.print(f"[dim]Edit {config_path()}[/dim]")
        sys.exit(1)

    if not config.cors.allowed_origins:
        console.print("[yellow]Warning:[/yellow] No allowed origins configured")
    if not config.downstream.api_key:
        console.print("[yellow]Warning:[/yellow] No downstream api_key configured")

    if config.logging.write_files:
        clear_logs(log_root)

    if headless:
        logger = ConsoleLogger(config, console=console)
    else:
        logger = Dashboard(config)

    import uvicorn

    app = create_app(config, logger)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="info" if headless else "warning",
        timeout_keep_alive=config.server.keep_alive_timeout,
    )
    server = uvicorn.Server(uvicorn_config)

    if isinstance(logger, Dashboard):
        logger.start()
    start_time = datetime.now()
    _cli_log(config, "STARTUP", "Relay started", port=config.server.port)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        _cli_log(config, "SHUTDOWN", "Relay stopped", duration=str(duration))
        if isinstance(logger, Dashboard):
            logger.stop()


def _cli_log(config, level: str, message: str, **extra) -> None:
    if config.logging.write_files:
        write_cli_log(level, message, log_root=Path(config.logging.log_dir), **extra)


def _run_check(args: list[str], config) -> int:
    """Check a relay: --check [URL] [--origin ORIGIN] [--target TARGET_URL]."""
    url = f"http://localhost:{config.server.port}"
    origin = config.cors.allowed_origins[0] if config.cors.allowed_origins else "http://localhost"
    target = None

    rest = list(args)
    while rest:
        item = rest.pop(0)
        if item in ("--origin", "--target"):
            if not rest:
                console.print(f"[red][ERROR][/red] {item} needs a value")
                return 2
            value = rest.pop(0)
            if item == "--origin":
                origin = value
            else:
                target = value
        else:
            url = item

    console.print(f"Checking relay at [bold]{url}[/bold] from origin [bold]{origin}[/bold]")
    results = run_checks(url, origin, target)
    return 0 if print_report(results, origin, console) else 1


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Meter Relay[/bold cyan]

Relays smart meter readings from the browser simulator to backend functions,
adding CORS headers for allow-listed origins.

[bold]Usage:[/bold]
    meter-relay                      Start with live dashboard
    meter-relay --headless           Start with line logging (hosted deployments)
    meter-relay --check \\[URL]        Check a running relay
        [--origin ORIGIN]            Origin to send (default: first allowed origin)
        [--target TARGET_URL]        Also forward a test reading to TARGET_URL
    meter-relay --config             Show config and log locations
    meter-relay --help               Show this help

[bold]Environment:[/bold]
    METER_RELAY_CONFIG   Config file path
    PORT                 Listen port (binds 0.0.0.0)
    DOWNSTREAM_API_KEY   Key sent to backend functions as apikey / Bearer
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
