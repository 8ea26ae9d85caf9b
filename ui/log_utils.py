"""Shared logging utilities."""

import json
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit
from uuid import uuid4

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_NAME = "relay.log"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def summarize_payload(payload: dict[str, Any]) -> str:
    """Describe a payload by shape only; field values are never read."""
    size = len(json.dumps(payload, default=str))
    noun = "field" if len(payload) == 1 else "fields"
    return f"{len(payload)} {noun}, {size} bytes"


def target_host(target_url: str) -> str:
    """Host part of a target URL for display."""
    return urlsplit(target_url).hostname or target_url


def write_incoming_log(
    method: str,
    path: str,
    headers: dict[str, str],
    body: Any,
    *,
    client: str | None = None,
    log_root: Path = LOG_ROOT,
) -> Path:
    """Write a single incoming request log entry."""
    payload = {
        "timestamp": _utc_now(),
        "method": method,
        "path": path,
        "client": client,
        "headers": _redact_headers(headers),
        "body": body,
    }
    return _write_json(log_root / "incoming", payload)


def write_forward_log(
    endpoint: str,
    target_url: str,
    body: dict[str, Any],
    *,
    origin: str | None,
    status: int,
    duration: float,
    log_root: Path = LOG_ROOT,
) -> Path:
    """Write a single forwarded request log entry."""
    payload = {
        "timestamp": _utc_now(),
        "endpoint": endpoint,
        "target_url": target_url,
        "origin": origin,
        "status": status,
        "duration_ms": round(duration * 1000, 1),
        "body": body,
    }
    return _write_json(log_root / "forward" / _safe_name(endpoint), payload)


def write_cli_log(
    level: str,
    message: str,
    *,
    log_root: Path = LOG_ROOT,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file = log_root / CLI_LOG_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with log_file.open("a") as f:
        f.write(line)


def clear_logs(log_root: Path = LOG_ROOT) -> int:
    """Remove JSON request logs from a previous run, keeping relay.log."""
    deleted = 0
    for sub in ("incoming", "forward"):
        folder = log_root / sub
        if not folder.exists():
            continue
        for old_file in folder.rglob("*.json"):
            try:
                old_file.unlink()
                deleted += 1
            except OSError:
                pass
    return deleted


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _safe_name(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", name).strip(".")
    return cleaned or "_"


def _redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact sensitive headers."""
    redacted = {}
    for key, value in headers.items():
        lower = key.lower()
        if "key" in lower or "authorization" in lower or lower == "cookie":
            redacted[key] = _mask(value)
        else:
            redacted[key] = value
    return redacted


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()
