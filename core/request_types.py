"""Shared request data types."""

from dataclasses import dataclass
from typing import Any

# error_code of a forward abandoned because the inbound client went away
CLIENT_CLOSED = "client_closed"


@dataclass(frozen=True)
class PreparedRequest:
    """Prepared data for a downstream request."""

    endpoint: str
    target_url: str
    headers: dict[str, str]
    payload: dict[str, Any]


@dataclass(frozen=True)
class RelayResult:
    """Outcome of one forward: downstream answer or synthesized error."""

    status_code: int
    body: bytes
    media_type: str = "application/json"
    error_code: str | None = None

    @property
    def synthesized(self) -> bool:
        return self.error_code is not None
