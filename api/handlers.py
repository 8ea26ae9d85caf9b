"""FastAPI route handlers."""

import json
import time
from datetime import UTC, datetime
from json import JSONDecodeError
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from core.config import Config
from core.cors import CorsPolicy
from core.exceptions import InvalidEnvelope, InvalidJSON, RequestTooLarge
from core.protocols import RequestLogger


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    content = {"error": error}
    if detail:
        content["detail"] = detail
    return JSONResponse(content, status_code=status_code)


async def _parse_json_body(
    request: Request,
    config: Config,
    logger: RequestLogger,
) -> Any:
    """Read and decode the request body, logging it either way.

    Raises:
        RequestTooLarge: body exceeds relay.max_body_size
        InvalidJSON: body does not decode
    """
    raw_body = await request.body()
    client = request.client.host if request.client else None
    headers = dict(request.headers)
    if len(raw_body) > config.relay.max_body_size:
        logger.log_incoming(request.method, request.url.path, headers, None, client=client)
        raise RequestTooLarge(f"body is {len(raw_body)} bytes")

    try:
        body = json.loads(raw_body.decode("utf-8"))
    except (JSONDecodeError, ValueError, RecursionError) as e:
        text_body = raw_body.decode("utf-8", errors="replace")
        logger.log_incoming(request.method, request.url.path, headers, text_body, client=client)
        raise InvalidJSON("body is not valid UTF-8 JSON") from e

    logger.log_incoming(request.method, request.url.path, headers, body, client=client)
    return body


async def handle_preflight(request: Request, policy: CorsPolicy) -> Response:
    """Answer a CORS preflight for /proxy/{endpoint}."""
    headers = policy.preflight_headers(
        request.headers.get("origin"),
        request.headers.get("access-control-request-method"),
        request.headers.get("access-control-request-headers"),
    )
    return Response(status_code=policy.preflight_status, headers=headers)


async def handle_forward(
    request: Request,
    endpoint: str,
    config: Config,
    logger: RequestLogger,
) -> Response:
    """Validate the envelope, forward it downstream and relay the answer."""
    relay_service = request.app.state.relay_service
    try:
        body = await _parse_json_body(request, config, logger)
        prepared = relay_service.prepare(endpoint, body)
    except RequestTooLarge as e:
        logger.log_error(endpoint, 413, str(e))
        return _error_response(413, "request body too large")
    except (InvalidJSON, InvalidEnvelope) as e:
        logger.log_error(endpoint, 400, str(e))
        return _error_response(400, "invalid request", str(e))

    upstream = request.app.state.upstream_client
    started = time.perf_counter()
    result = await upstream.forward(prepared, logger, request.is_disconnected)
    logger.log_forward(
        endpoint,
        prepared.target_url,
        prepared.payload,
        origin=request.headers.get("origin"),
        status=result.status_code,
        duration=time.perf_counter() - started,
        error_code=result.error_code,
    )

    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.media_type,
    )


async def handle_usage(request: Request, endpoint: str) -> JSONResponse:
    """Explain the POST contract to GET callers."""
    return JSONResponse(request.app.state.relay_service.usage(endpoint))


async def handle_health(request: Request) -> JSONResponse:
    """Liveness check with uptime."""
    return JSONResponse(
        {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        }
    )


async def handle_index(_request: Request) -> JSONResponse:
    """Describe the service and its endpoints."""
    return JSONResponse(
        {
            "message": "Meter Relay",
            "description": "Relays smart meter readings to backend functions "
            "and adds CORS headers for the simulator's origins",
            "endpoints": {
                "health": "/health",
                "proxy": "/proxy/{endpoint}",
                "docs": "/",
            },
            "usage": "POST to /proxy/{endpoint} with { target_url, ...data }",
        }
    )
