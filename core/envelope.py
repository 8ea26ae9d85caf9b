"""Forward envelope parsing and target URL validation."""

from typing import Any
from urllib.parse import unquote, urlsplit

import httpx

from core.config import DownstreamSettings
from core.exceptions import InvalidEnvelope

TARGET_FIELD = "target_url"
LEGACY_TARGET_FIELD = "url"


def parse_envelope(
    body: Any,
    settings: DownstreamSettings,
) -> tuple[str, dict[str, Any]]:
    """Split a request body into (target_url, payload).

    The payload is every other field, untouched. Older simulator builds send
    the target as ``url``; that key is used only when ``target_url`` is absent.
    """
    if not isinstance(body, dict):
        raise InvalidEnvelope("body must be a JSON object")

    payload = dict(body)
    if TARGET_FIELD in payload:
        target = payload.pop(TARGET_FIELD)
    else:
        target = payload.pop(LEGACY_TARGET_FIELD, None)

    if not isinstance(target, str) or not target:
        raise InvalidEnvelope(f"{TARGET_FIELD} is required")

    validate_target(target, settings)
    return target, payload


def validate_target(target: str, settings: DownstreamSettings) -> None:
    """Reject anything that is not an allow-listed absolute HTTP(S) URL."""
    try:
        parts = urlsplit(target)
        host = parts.hostname
    except ValueError as e:
        raise InvalidEnvelope(f"{TARGET_FIELD} is not a valid URL") from e

    if parts.scheme not in ("http", "https") or not host:
        raise InvalidEnvelope(f"{TARGET_FIELD} must be an absolute http(s) URL")

    if parts.username or parts.password:
        raise InvalidEnvelope(f"{TARGET_FIELD} must not carry credentials")

    if not host_allowed(host, settings.allowed_hosts):
        raise InvalidEnvelope(f"host {host} is not allowed")

    if any(unquote(segment) in (".", "..") for segment in parts.path.split("/")):
        raise InvalidEnvelope(f"{TARGET_FIELD} must not contain dot segments")

    # httpx normalizes the path before sending; check what goes on the wire
    try:
        path = httpx.URL(target).path or "/"
    except httpx.InvalidURL as e:
        raise InvalidEnvelope(f"{TARGET_FIELD} is not a valid URL") from e
    if settings.path_prefixes and not any(path.startswith(p) for p in settings.path_prefixes):
        raise InvalidEnvelope(f"path {path} is not allowed")


def host_allowed(host: str, allowed_hosts: tuple[str, ...]) -> bool:
    """Match host against exact names and ``*.domain`` subdomain patterns."""
    host = host.lower().rstrip(".")
    for pattern in allowed_hosts:
        pattern = pattern.lower()
        if pattern.startswith("*."):
            if host.endswith(pattern[1:]):
                return True
        elif host == pattern:
            return True
    return False
