"""MCP tool server (stdio transport) backed by a remote server.

Unlike the plain proxy, this mode answers ``initialize`` itself and
exposes the remote server's tools through ``tools/list`` and
``tools/call``. The remote session handshake is performed once, lazily,
before the first tool operation.

Communicates via stdin/stdout using newline-delimited JSON-RPC 2.0.

Usage:
    mcpbridge-server <url> --token <token> [options]
"""

import asyncio
import json
import logging
import sys
import time
from collections.abc import Callable, Sequence
from typing import Any

from mcpbridge import __version__
from mcpbridge.bridge.loop import (
    READ_CHUNK_SIZE,
    ByteReader,
    open_stdin_reader,
    write_stdout_line,
)
from mcpbridge.bridge.protocol import (
    INITIALIZE_METHOD,
    INITIALIZED_NOTIFICATION,
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    make_error_response,
    make_success_response,
    serialize_response,
)
from mcpbridge.bridge.proxy import BridgeProxy
from mcpbridge.cli.main import load_config_or_exit
from mcpbridge.cli.runtime import run_until_signal

logger = logging.getLogger(__name__)

SERVER_NAME = "mcpbridge"

# MCP protocol version offered to the remote server when none is configured
DEFAULT_PROTOCOL_VERSION = "2024-11-05"


class ToolExecutionError(Exception):
    """A proxied tools/call failed."""


def _server_info() -> dict[str, Any]:
    return {"name": SERVER_NAME, "version": __version__}


def _error_message(error: Any) -> str:
    """Message of an upstream error member, which is not always an object."""
    if isinstance(error, dict):
        return str(error.get("message", "unknown error"))
    return str(error)


class ToolServer:
    """Serves tools/list and tools/call by proxying to the remote server.

    Args:
        proxy: Proxy connected to the remote server.
        write_line: Sink for reply lines (no trailing newline).
    """

    def __init__(
        self,
        proxy: BridgeProxy,
        write_line: Callable[[str], None] = write_stdout_line,
    ) -> None:
        self._proxy = proxy
        self._write_line = write_line
        self._remote_initialized = False
        self._handshake_lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def remote_initialized(self) -> bool:
        return self._remote_initialized

    def _next_id(self) -> int:
        return time.time_ns() // 1_000_000 + self._proxy.next_request_number()

    async def ensure_remote_session(self) -> None:
        """Run initialize + notifications/initialized upstream once.

        A failed handshake is logged and attempted again on the next call.
        """
        async with self._handshake_lock:
            if self._remote_initialized:
                return

            init_request = {
                "jsonrpc": "2.0",
                "id": self._next_id(),
                "method": INITIALIZE_METHOD,
                "params": {
                    "protocolVersion": self._proxy.config.protocol_version
                    or DEFAULT_PROTOCOL_VERSION,
                    "capabilities": {"tools": {}},
                    "clientInfo": _server_info(),
                },
            }
            response = await self._proxy.proxy_request(init_request)
            if "error" in response:
                logger.error("Failed to initialize remote session: %s", response["error"])
                return

            await self._proxy.proxy_request(
                {"jsonrpc": "2.0", "method": INITIALIZED_NOTIFICATION, "params": {}}
            )
            self._remote_initialized = True
            logger.info("Remote session initialized successfully")

    async def list_tools(self) -> list[dict[str, Any]]:
        """Tools advertised by the remote server; empty when unreachable."""
        try:
            await self.ensure_remote_session()
            response = await self._proxy.proxy_request(
                {"jsonrpc": "2.0", "id": self._next_id(), "method": "tools/list", "params": {}}
            )
        except Exception as e:
            logger.error("Error listing tools: %s", e)
            return []

        if "error" in response:
            logger.error("Failed to list tools: %s", _error_message(response["error"]))
            return []
        result = response.get("result")
        if not isinstance(result, dict):
            return []
        return result.get("tools") or []

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> dict[str, Any]:
        """Invoke a remote tool.

        Raises:
            ToolExecutionError: If the remote server reports an error.
        """
        await self.ensure_remote_session()
        response = await self._proxy.proxy_request(
            {
                "jsonrpc": "2.0",
                "id": self._next_id(),
                "method": "tools/call",
                "params": {"name": name, "arguments": arguments or {}},
            }
        )
        if "error" in response:
            message = _error_message(response["error"])
            raise ToolExecutionError(f"Tool call failed: {message}")

        result = response.get("result")
        content = result.get("content") if isinstance(result, dict) else None
        if content:
            return {"content": content}
        return {"content": [{"type": "text", "text": json.dumps(result, indent=2)}]}

    async def handle_request(self, request: dict[str, Any]) -> dict[str, Any] | None:
        """Handle an incoming MCP request."""
        method = request.get("method", "")
        params = request.get("params") or {}
        request_id = request.get("id")

        # Notifications have no id - don't send response
        if request_id is None:
            return None

        try:
            if method == INITIALIZE_METHOD:
                return make_success_response(
                    request_id,
                    {
                        "protocolVersion": params.get("protocolVersion")
                        or DEFAULT_PROTOCOL_VERSION,
                        "capabilities": {"tools": {}},
                        "serverInfo": _server_info(),
                    },
                )

            elif method == "ping":
                return make_success_response(request_id, {})

            elif method == "tools/list":
                return make_success_response(request_id, {"tools": await self.list_tools()})

            elif method == "tools/call":
                result = await self.call_tool(params.get("name", ""), params.get("arguments"))
                return make_success_response(request_id, result)

            else:
                return make_error_response(request_id, METHOD_NOT_FOUND, f"Unknown method: {method}")

        except Exception as e:
            logger.error("Error handling %s: %s", method, e)
            return make_error_response(
                request_id, INTERNAL_ERROR, f"Tool execution failed: {e}"
            )

    async def handle_line(self, line: str) -> str | None:
        """Handle one input line, returning the reply line if any."""
        try:
            request = json.loads(line)
        except json.JSONDecodeError:
            return serialize_response(make_error_response(None, PARSE_ERROR, "Parse error"))
        if not isinstance(request, dict):
            return serialize_response(make_error_response(None, PARSE_ERROR, "Parse error"))

        response = await self.handle_request(request)
        if response is None:
            return None
        return serialize_response(response)

    async def _serve_line(self, line: str) -> None:
        try:
            reply = await self.handle_line(line)
        except Exception as e:
            logger.error("Failed to handle message: %s", e)
            return
        if reply is not None:
            self._write_line(reply)

    async def run(self, reader: ByteReader) -> None:
        """Main server loop - read from the reader, write replies to stdout.

        Each line is served in its own task, so a slow tools/call does not
        hold up ping or tools/list. Replies may leave out of order.
        """
        buffer = b""
        while True:
            chunk = await reader.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            buffer += chunk
            *lines, buffer = buffer.split(b"\n")
            for raw in lines:
                line = raw.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                task = asyncio.create_task(self._serve_line(line))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

        if self._pending:
            await asyncio.gather(*self._pending)


async def run_tool_server(proxy: BridgeProxy) -> None:
    server = ToolServer(proxy)
    try:
        reader = await open_stdin_reader()
        logger.info("MCP tool server running on stdio")
        await run_until_signal(server.run(reader))
    finally:
        await proxy.aclose()


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point."""
    config = load_config_or_exit(
        argv,
        prog="mcpbridge-server",
        description="Expose a remote HTTP MCP server's tools as a stdio MCP server",
    )
    try:
        asyncio.run(run_tool_server(BridgeProxy(config)))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
