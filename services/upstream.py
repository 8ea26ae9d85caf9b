"""HTTP forwarding to the downstream function endpoint."""

import asyncio
import json
import socket
import ssl
from collections.abc import Awaitable, Callable, Iterator

import httpx

from core.exceptions import (
    ClientDisconnected,
    DownstreamConnectionError,
    DownstreamError,
    DownstreamTimeoutError,
)
from core.protocols import RequestLogger
from core.request_types import CLIENT_CLOSED, PreparedRequest, RelayResult

DisconnectCheck = Callable[[], Awaitable[bool]]

CLIENT_CLOSED_STATUS = 499

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "temporary failure in name resolution",
    "no address associated",
)
_REFUSED_MARKERS = ("connection refused", "errno 111", "errno 61", "actively refused")
_TLS_MARKERS = ("certificate", "ssl", "tls")


class UpstreamClient:
    """Forward prepared requests over a shared connection pool."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float,
        poll_interval: float = 0.25,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._poll_interval = poll_interval

    async def forward(
        self,
        prepared: PreparedRequest,
        logger: RequestLogger,
        is_disconnected: DisconnectCheck | None = None,
    ) -> RelayResult:
        """POST the payload downstream and relay whatever comes back.

        Downstream answers, including 4xx/5xx, are returned verbatim.
        Transport failures become a 502/504 with a failure code and no
        exception text.
        """
        try:
            response = await self._send(prepared, is_disconnected)
        except DownstreamError as e:
            logger.log_error(prepared.endpoint, e.status_code, f"{e.code}: {e}")
            return error_result(e.status_code, e.code)
        except ClientDisconnected:
            logger.log_error(prepared.endpoint, CLIENT_CLOSED_STATUS, "client disconnected")
            return RelayResult(
                status_code=CLIENT_CLOSED_STATUS,
                body=b"",
                error_code=CLIENT_CLOSED,
            )

        if response.is_error:
            logger.log_error(prepared.endpoint, response.status_code, response.text)

        return RelayResult(
            status_code=response.status_code,
            body=response.content,
            media_type=response.headers.get("content-type", "application/json"),
        )

    async def _send(
        self,
        prepared: PreparedRequest,
        is_disconnected: DisconnectCheck | None,
    ) -> httpx.Response:
        """Run the bounded POST, cancelling it if the caller disconnects."""
        call = asyncio.ensure_future(self._post_bounded(prepared))
        if is_disconnected is None:
            return await call

        try:
            while True:
                done, _ = await asyncio.wait({call}, timeout=self._poll_interval)
                if done:
                    return call.result()
                if await is_disconnected():
                    raise ClientDisconnected()
        finally:
            if not call.done():
                call.cancel()
                await asyncio.wait({call})

    async def _post_bounded(self, prepared: PreparedRequest) -> httpx.Response:
        try:
            return await asyncio.wait_for(self._post(prepared), self._timeout)
        except asyncio.TimeoutError as e:
            raise DownstreamTimeoutError(
                f"no response within {self._timeout:g}s from {prepared.target_url}"
            ) from e

    async def _post(self, prepared: PreparedRequest) -> httpx.Response:
        try:
            return await self._client.post(
                prepared.target_url,
                json=prepared.payload,
                headers=prepared.headers,
            )
        except httpx.TimeoutException as e:
            raise DownstreamTimeoutError(str(e) or "downstream timeout") from e
        except httpx.RequestError as e:
            raise DownstreamConnectionError(str(e), classify_transport_error(e)) from e


def classify_transport_error(exc: BaseException) -> str:
    """Map a transport failure to ENOTFOUND, ECONNREFUSED, timeout or certificate."""
    if isinstance(exc, httpx.TimeoutException):
        return "timeout"

    for cause in _causes(exc):
        if isinstance(cause, ssl.SSLError):
            return "certificate"
        if isinstance(cause, socket.gaierror):
            return "ENOTFOUND"
        if isinstance(cause, ConnectionRefusedError):
            return "ECONNREFUSED"
        if isinstance(cause, TimeoutError):
            return "timeout"

    text = " ".join(str(c) for c in _causes(exc)).lower()
    if any(marker in text for marker in _DNS_MARKERS):
        return "ENOTFOUND"
    if any(marker in text for marker in _REFUSED_MARKERS):
        return "ECONNREFUSED"
    if any(marker in text for marker in _TLS_MARKERS):
        return "certificate"
    return "connection_error"


def error_result(status_code: int, code: str) -> RelayResult:
    """Build a synthesized error result without leaking exception detail."""
    body = {"error": "downstream unreachable", "code": code}
    return RelayResult(
        status_code=status_code,
        body=json.dumps(body).encode(),
        error_code=code,
    )


def _causes(exc: BaseException) -> Iterator[BaseException]:
    """Walk the explicit and implicit exception chain, guarding against cycles."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__
