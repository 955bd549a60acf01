"""Shared pytest fixtures and configuration for pytest."""

import json
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import pytest

from mcpbridge.config.loader import build_config
from mcpbridge.config.schema import ProxyConfig

SERVER_URL = "http://localhost:9000/mcp"
TEST_TOKEN = "test-token-0123456789"

Responder = Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for platform-specific tests."""
    config.addinivalue_line("markers", "unix_only: mark test to run only on Unix")


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Auto-skip tests based on platform markers."""
    skip_unix = pytest.mark.skip(reason="Unix-only test")

    for item in items:
        if "unix_only" in item.keywords and sys.platform == "win32":
            item.add_marker(skip_unix)


def envelope_for(request: httpx.Request, result: Any = None) -> httpx.Response:
    """JSON response answering the request's id with ``result``."""
    body = json.loads(request.content)
    if result is None:
        result = {"method": body.get("method")}
    return httpx.Response(
        200,
        json={"jsonrpc": "2.0", "id": body.get("id"), "result": result},
    )


class RecordingHandler:
    """httpx.MockTransport handler that remembers every request it saw.

    Args:
        responder: Builds the response for each request. May be async.
    """

    def __init__(self, responder: Responder = envelope_for) -> None:
        self.requests: list[httpx.Request] = []
        self._responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response | Awaitable[httpx.Response]:
        self.requests.append(request)
        return self._responder(request)

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def methods(self) -> list[str]:
        return [body["method"] for body in self.bodies]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class SleepRecorder:
    """Stand-in for asyncio.sleep that returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def proxy_config() -> ProxyConfig:
    """Plain-HTTP config with the default retry policy."""
    return build_config(server_url=SERVER_URL, token=TEST_TOKEN)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
