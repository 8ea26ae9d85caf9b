"""Shared fixtures: an in-process relay with a scriptable downstream."""

import inspect
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from core.config import Config, CorsSettings, DownstreamSettings, LoggingSettings, RelaySettings

ALLOWED_ORIGIN = "https://allowed.example"
EVIL_ORIGIN = "https://evil.example"
TARGET_URL = "https://backend.example/fn"


class RecordingLogger:
    """RequestLogger that keeps everything in memory."""

    def __init__(self) -> None:
        self.incoming: list[dict[str, Any]] = []
        self.forwards: list[dict[str, Any]] = []
        self.errors: list[tuple[str, int, str]] = []

    def log_incoming(self, method, path, headers, body, *, client=None) -> None:
        self.incoming.append({"method": method, "path": path, "body": body, "client": client})

    def log_forward(
        self, endpoint, target_url, payload, *, origin, status, duration, error_code=None
    ) -> None:
        self.forwards.append(
            {
                "endpoint": endpoint,
                "target_url": target_url,
                "payload": payload,
                "origin": origin,
                "status": status,
                "duration": duration,
                "error_code": error_code,
            }
        )

    def log_error(self, endpoint, status, message) -> None:
        self.errors.append((endpoint, status, message))


class Downstream:
    """MockTransport handler standing in for the backend function."""

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self.respond = lambda request: httpx.Response(200, json={"status": "ok"})

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        response = self.respond(request)
        if inspect.isawaitable(response):
            response = await response
        return response


def make_config(**downstream: Any) -> Config:
    settings = {"allowed_hosts": ("backend.example",), "path_prefixes": (), "timeout": 2.0}
    settings.update(downstream)
    return Config(
        cors=CorsSettings(allowed_origins=(ALLOWED_ORIGIN,)),
        downstream=DownstreamSettings(**settings),
        relay=RelaySettings(max_body_size=4096, disconnect_poll_interval=0.05),
        logging=LoggingSettings(write_files=False),
    )


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def downstream() -> Downstream:
    return Downstream()


@pytest.fixture
def config() -> Config:
    return make_config()


@pytest.fixture
def relay(config, logger, downstream):
    app = create_app(config, logger, transport=httpx.MockTransport(downstream))
    with TestClient(app) as client:
        yield client
