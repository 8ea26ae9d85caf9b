"""Shared protocol definitions."""

from typing import Any, Protocol


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard, ConsoleLogger)."""

    def log_incoming(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        body: Any,
        *,
        client: str | None = None,
    ) -> None: ...
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
    ) -> None: ...
    def log_error(self, endpoint: str, status: int, message: str) -> None: ...
