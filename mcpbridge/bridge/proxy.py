"""The proxy instance: configuration plus the state it owns.

A BridgeProxy owns one session tracker, one response cache, one request
counter and one HTTP client. Nothing here is process-global; the HTTP
front-end builds a fresh instance per inbound call, the stdio modes build
one for the life of the process.

All state is touched from the event loop thread only, so no locks are
needed.
"""

import asyncio
import logging
import random
import time
from collections.abc import Callable
from typing import Any

import httpx

from mcpbridge.bridge.cache import ResponseCache
from mcpbridge.bridge.protocol import (
    INITIALIZED_NOTIFICATION,
    INTERNAL_ERROR,
    INVALID_REQUEST,
    InvalidRequest,
    Request,
    make_error_response,
    make_notification,
    request_from_dict,
)
from mcpbridge.bridge.retry import RetryOrchestrator, SleepFn
from mcpbridge.bridge.session import SessionTracker
from mcpbridge.bridge.transport import REQUEST_TIMEOUT, HTTPDispatcher
from mcpbridge.config.schema import ProxyConfig
from mcpbridge.core.errors import TransportError

logger = logging.getLogger(__name__)


def internal_error(request_id: Any, error: BaseException) -> dict[str, Any]:
    """Envelope reported to the client when a request could not be completed."""
    return make_error_response(request_id, INTERNAL_ERROR, "Internal error", str(error))


class BridgeProxy:
    """Forwards JSON-RPC requests to one remote server.

    Args:
        config: Immutable proxy configuration.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, mainly for tests.
        sleep: Backoff sleep coroutine (seconds).
        rng: Random source for backoff jitter.
        clock: Monotonic clock for cache expiry (seconds).
    """

    def __init__(
        self,
        config: ProxyConfig,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFn = asyncio.sleep,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.session = SessionTracker()
        self.cache = ResponseCache(clock=clock)
        self._dispatcher = HTTPDispatcher(config, self.session, timeout, transport)
        self._retry = RetryOrchestrator(self._dispatcher.send, config.retry, sleep, rng)
        self._request_counter = 0
        self._background: set[asyncio.Task[None]] = set()

    @property
    def request_count(self) -> int:
        return self._request_counter

    def next_request_number(self) -> int:
        """Advance the log-correlation counter and return the new value."""
        self._request_counter += 1
        return self._request_counter

    def log_startup(self) -> None:
        logger.info("Initializing MCP bridge proxy...")
        logger.info("Server: %s", self.config.server_url)
        logger.info("Auth Method: %s", self.config.auth.method.value)
        logger.info(
            "SSL verification: %s", "disabled" if self.config.skip_ssl else "enabled"
        )
        logger.info("Protocol version: %s", self.config.protocol_version or "latest")
        logger.info("Caching: %s", "enabled" if self.config.cache_enabled else "disabled")

    async def send_with_retry(self, request: Request, tag: str = "") -> dict[str, Any]:
        """Forward a request with retries. Raises TransportError when exhausted."""
        return await self._retry.send_with_retry(request, tag)

    async def proxy_request(self, message: dict[str, Any]) -> dict[str, Any]:
        """Proxy one request and return one response.

        Entry point for the HTTP front-end and the tool server. It never
        raises for transport problems: they become an Internal Error
        envelope. No cache and no id substitution are applied.

        Args:
            message: Decoded JSON-RPC request object.

        Returns:
            The server's (normalized) envelope or an error envelope.
        """
        request_id = message.get("id") if isinstance(message, dict) else None
        try:
            request = request_from_dict(message)
        except InvalidRequest as e:
            return make_error_response(request_id, INVALID_REQUEST, "Invalid Request", e.message)

        try:
            return await self.send_with_retry(request)
        except TransportError as e:
            logger.error("Proxy request failed: %s", e.message)
            return internal_error(request_id, e)

    def spawn_initialized_notification(self, tag: str = "") -> asyncio.Task[None]:
        """Send ``notifications/initialized`` upstream without waiting for it.

        Failures are logged and never reach the client.
        """
        task = asyncio.create_task(self._send_initialized(tag))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _send_initialized(self, tag: str) -> None:
        logger.info("%sSending %s to server...", tag, INITIALIZED_NOTIFICATION)
        try:
            await self.send_with_retry(make_notification(INITIALIZED_NOTIFICATION), tag)
        except TransportError as e:
            logger.error("%sFailed to initialize server session: %s", tag, e.message)
            return
        logger.info("%sServer session initialized successfully", tag)

    async def drain(self) -> None:
        """Wait for detached background sends to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def aclose(self) -> None:
        """Release the HTTP client."""
        await self._dispatcher.aclose()

    async def __aenter__(self) -> "BridgeProxy":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
