"""FastAPI application factory."""

import time
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, Response

from api.handlers import (
    handle_forward,
    handle_health,
    handle_index,
    handle_preflight,
    handle_usage,
)
from core.config import Config
from core.cors import CorsPolicy
from core.protocols import RequestLogger
from services.relay_service import RelayService
from services.upstream import UpstreamClient


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``transport`` replaces the network transport of the downstream client;
    tests pass an ``httpx.MockTransport``.
    """
    policy = CorsPolicy(config.cors)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        downstream = config.downstream
        limits = httpx.Limits(
            max_connections=downstream.max_connections,
            max_keepalive_connections=downstream.max_keepalive_connections,
        )
        client = httpx.AsyncClient(
            timeout=downstream.timeout,
            limits=limits,
            transport=transport,
        )
        app.state.upstream_client = UpstreamClient(
            client,
            timeout=downstream.timeout,
            poll_interval=config.relay.disconnect_poll_interval,
        )
        app.state.relay_service = RelayService(config)
        app.state.started_at = time.monotonic()
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(title="Meter Relay", version="0.1.0", lifespan=lifespan)

    def with_cors(request: Request, response: Response) -> Response:
        response.headers.update(policy.response_headers(request.headers.get("origin")))
        return response

    @app.options("/proxy/{endpoint}")
    async def proxy_preflight(request: Request):
        return await handle_preflight(request, policy)

    @app.post("/proxy/{endpoint}")
    async def proxy_forward(request: Request, endpoint: str):
        return with_cors(request, await handle_forward(request, endpoint, config, logger))

    @app.get("/proxy/{endpoint}")
    async def proxy_usage(request: Request, endpoint: str):
        return with_cors(request, await handle_usage(request, endpoint))

    @app.get("/health")
    async def health(request: Request):
        return with_cors(request, await handle_health(request))

    @app.get("/")
    async def index(request: Request):
        return with_cors(request, await handle_index(request))

    return app
