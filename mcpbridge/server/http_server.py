"""HTTP front-end for the bridge.

Each POST /mcp builds a fresh BridgeProxy from query parameters (with
environment fallbacks), proxies the JSON-RPC body once, and returns the
response. Nothing is shared between calls: no session id and no cache.

Usage:
    mcpbridge-http [--host 0.0.0.0] [--port 3000]

    curl -X POST 'http://localhost:3000/mcp?SERVER_URL=https://pm.example.com/mcp&API_TOKEN=abc' \\
         -d '{"jsonrpc":"2.0","id":1,"method":"tools/list"}'
"""

import asyncio
import logging
import os
import sys
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from aiohttp import web
from dotenv import load_dotenv

from mcpbridge.bridge.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    PARSE_ERROR,
    make_error_response,
)
from mcpbridge.bridge.proxy import BridgeProxy
from mcpbridge.cli.arg_parser import parse_http_args
from mcpbridge.cli.logging_setup import configure_logging, level_from_flags
from mcpbridge.config.loader import config_from_query
from mcpbridge.config.schema import ProxyConfig
from mcpbridge.core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
SERVICE_NAME = "mcpbridge"

ProxyFactory = Callable[[ProxyConfig], BridgeProxy]

PROXY_FACTORY_KEY = web.AppKey("proxy_factory", object)
ENVIRON_KEY = web.AppKey("environ", object)

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}


@web.middleware
async def cors_middleware(
    request: web.Request,
    handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
) -> web.StreamResponse:
    """Answer preflight requests and add permissive CORS headers."""
    if request.method == "OPTIONS":
        response: web.StreamResponse = web.Response(status=204)
    else:
        response = await handler(request)
    response.headers.update(CORS_HEADERS)
    return response


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "healthy", "service": SERVICE_NAME})


async def handle_mcp(request: web.Request) -> web.Response:
    """Proxy one JSON-RPC request using configuration from the query string."""
    try:
        body: Any = await request.json()
    except ValueError:
        # JSONDecodeError, or UnicodeDecodeError for a body that is not UTF-8
        return web.json_response(make_error_response(None, PARSE_ERROR, "Parse error"), status=400)

    request_id = body.get("id") if isinstance(body, dict) else None
    environ: Mapping[str, str] = request.app[ENVIRON_KEY]  # type: ignore[assignment]
    factory: ProxyFactory = request.app[PROXY_FACTORY_KEY]  # type: ignore[assignment]

    try:
        config = config_from_query(request.query, environ)
    except ConfigError as e:
        logger.warning("Rejecting request: %s", e.message)
        return web.json_response(
            make_error_response(
                request_id,
                INVALID_PARAMS,
                "Invalid params: SERVER_URL and API_TOKEN are required",
                e.message,
            ),
            status=400,
        )

    try:
        async with factory(config) as proxy:
            response = await proxy.proxy_request(body)
    except Exception as e:
        logger.exception("HTTP MCP request failed: %s", e)
        return web.json_response(
            make_error_response(request_id, INTERNAL_ERROR, "Internal error", str(e)),
            status=500,
        )

    return web.json_response(response)


def create_app(
    proxy_factory: ProxyFactory = BridgeProxy,
    environ: Mapping[str, str] | None = None,
) -> web.Application:
    """Build the aiohttp application.

    Args:
        proxy_factory: Creates a proxy from a config (replaceable in tests).
        environ: Environment used for configuration fallbacks.
    """
    app = web.Application(middlewares=[cors_middleware])
    app[PROXY_FACTORY_KEY] = proxy_factory
    app[ENVIRON_KEY] = os.environ if environ is None else environ
    app.router.add_get("/health", handle_health)
    app.router.add_post("/mcp", handle_mcp)
    return app


async def run_server(host: str, port: int) -> None:
    """Run the HTTP front-end until cancelled."""
    runner = web.AppRunner(create_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info("MCP bridge HTTP server listening on port %d", port)
    logger.info("Health check: http://localhost:%d/health", port)
    logger.info("MCP endpoint: http://localhost:%d/mcp", port)

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point."""
    load_dotenv()
    args = parse_http_args(argv)
    configure_logging(level_from_flags(args.verbose, args.quiet))

    port = args.port
    if port is None:
        try:
            port = int(os.environ.get("PORT", DEFAULT_PORT))
        except ValueError:
            logger.error("PORT must be an integer")
            sys.exit(1)

    try:
        asyncio.run(run_server(args.host, port))
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
