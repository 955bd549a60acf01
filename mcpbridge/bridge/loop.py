"""Newline-delimited JSON-RPC message loop over stdin/stdout.

Reads the client's input stream, handles each complete line in its own
task, and writes exactly one JSON line per non-notification request.
Because lines are handled concurrently, responses may leave in a different
order than requests arrived; each carries its request's id.

Per-line flow:
    parse -> notifications/*  : consume, write nothing
          -> initialize       : forward, write, then send
                                notifications/initialized in the background
          -> cacheable list   : serve from cache or forward and store
          -> anything else    : forward
"""

import asyncio
import logging
import sys
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from mcpbridge.bridge.cache import cache_key, is_cacheable
from mcpbridge.bridge.protocol import (
    INITIALIZE_METHOD,
    INITIALIZED_NOTIFICATION,
    INVALID_REQUEST,
    InvalidRequest,
    Request,
    make_error_response,
    parse_request,
    serialize_response,
    with_request_id,
)
from mcpbridge.bridge.proxy import BridgeProxy, internal_error

logger = logging.getLogger(__name__)

# Bytes requested from the input stream per read
READ_CHUNK_SIZE: int = 64 * 1024


class LoopState(Enum):
    """Lifecycle of the message loop."""

    AWAITING_LINE = "awaiting_line"
    SHUT_DOWN = "shut_down"


class Route(Enum):
    """How a parsed request is handled."""

    NOTIFICATION = "notification"
    INITIALIZE = "initialize"
    CACHE_LOOKUP = "cache_lookup"
    DIRECT_FORWARD = "direct_forward"


class ByteReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


def classify(request: Request, caching_enabled: bool) -> Route:
    """Pick the handling route for a request."""
    if request.is_namespaced_notification:
        return Route.NOTIFICATION
    if request.method == INITIALIZE_METHOD:
        return Route.INITIALIZE
    if is_cacheable(request, caching_enabled):
        return Route.CACHE_LOOKUP
    return Route.DIRECT_FORWARD


def write_stdout_line(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


class ThreadedStdinReader:
    """Reads stdin in a worker thread.

    Used when stdin cannot be attached to the event loop as a pipe (for
    example when it is redirected from a regular file).
    """

    async def read(self, n: int = -1) -> bytes:
        size = n if n > 0 else READ_CHUNK_SIZE
        return await asyncio.to_thread(sys.stdin.buffer.read1, size)


async def open_stdin_reader() -> ByteReader:
    """Attach stdin to the running event loop for non-blocking reads."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    try:
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    except (ValueError, OSError, NotImplementedError) as e:
        logger.debug("stdin is not a pipe (%s), reading in a thread", e)
        return ThreadedStdinReader()
    return reader


class MessageLoop:
    """Bridges one input stream to one BridgeProxy.

    Args:
        proxy: The proxy that owns session, cache and HTTP client.
        write_line: Sink for response lines (no trailing newline).
    """

    def __init__(
        self,
        proxy: BridgeProxy,
        write_line: Callable[[str], None] = write_stdout_line,
    ) -> None:
        self._proxy = proxy
        self._write_line = write_line
        self._pending: set[asyncio.Task[None]] = set()
        self.state = LoopState.AWAITING_LINE

    async def run(self, reader: ByteReader) -> None:
        """Read until end of input, then wait for in-flight requests.

        Args:
            reader: Byte source with an async ``read(n)`` (StreamReader or
                ThreadedStdinReader). An empty read means end of input.
        """
        logger.info("Ready to handle MCP requests...")
        buffer = b""
        while True:
            chunk = await reader.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            buffer += chunk
            *lines, buffer = buffer.split(b"\n")
            for raw in lines:
                self._dispatch(raw)

        if buffer.strip():
            logger.debug("Handling unterminated final line")
            self._dispatch(buffer)

        logger.info("Input stream ended - client disconnected")
        await self.shutdown()

    def _dispatch(self, raw: bytes) -> None:
        line = raw.decode("utf-8", errors="replace").strip()
        if not line:
            return
        task = asyncio.create_task(self.handle_line(line))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def shutdown(self) -> None:
        """Finish in-flight work and release the proxy's resources."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._proxy.drain()
        await self._proxy.aclose()
        self.state = LoopState.SHUT_DOWN
        logger.info("Cleaning up proxy...")

    def _respond(self, response: dict[str, Any]) -> None:
        self._write_line(serialize_response(response))

    async def handle_line(self, line: str) -> None:
        """Handle one input line end to end. Never raises."""
        number = self._proxy.next_request_number()
        tag = f"[{number}] "
        request: Request | None = None

        try:
            try:
                request = parse_request(line)
            except InvalidRequest as e:
                logger.warning("%sInvalid request: %s", tag, e.message)
                self._respond(
                    make_error_response(e.request_id, INVALID_REQUEST, "Invalid Request", e.message)
                )
                return

            logger.info("%sHandling request: %s (id: %s)", tag, request.method, request.id)
            route = classify(request, self._proxy.config.cache_enabled)

            if route is Route.NOTIFICATION:
                logger.info("%sNotification: %s", tag, request.method)
                if request.method == INITIALIZED_NOTIFICATION:
                    logger.info("%sMCP handshake completed - ready for requests", tag)
                return

            if route is Route.INITIALIZE:
                response = await self._proxy.send_with_retry(request, tag)
                self._finish(request, response, tag)
                self._proxy.spawn_initialized_notification(tag)
                return

            if route is Route.CACHE_LOOKUP:
                response = await self._forward_cached(request, tag)
            else:
                response = await self._proxy.send_with_retry(request, tag)

            self._finish(request, response, tag)

        except Exception as e:
            logger.error("%sFailed to handle message: %s", tag, e)
            if request is not None and request.is_notification:
                return
            self._respond(internal_error(request.id if request else None, e))

    async def _forward_cached(self, request: Request, tag: str) -> dict[str, Any]:
        key = cache_key(request)
        cached = self._proxy.cache.get(key)
        if cached is not None:
            logger.info("%sCache hit for %s", tag, request.method)
            return cached

        logger.info("%sCache miss for %s, fetching...", tag, request.method)
        response = await self._proxy.send_with_retry(request, tag)
        self._proxy.cache.put(key, response)
        return response

    def _finish(self, request: Request, response: dict[str, Any], tag: str) -> None:
        if request.is_notification:
            logger.info("%sNo reply written for notification %s", tag, request.method)
            return
        self._respond(with_request_id(response, request.id))
        logger.info("%sRequest completed successfully", tag)
