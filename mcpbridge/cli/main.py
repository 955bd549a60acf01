"""Entry point for the stdio proxy.

Usage:
    mcpbridge <url> --token <token> [options]

Reads JSON-RPC lines from stdin, forwards them to the remote server, and
writes the responses to stdout. Logs go to stderr.

Exit codes: 0 on end of input or SIGINT/SIGTERM, 1 on a fatal startup error.
"""

import asyncio
import logging
import sys
from collections.abc import Sequence

from dotenv import load_dotenv

from mcpbridge.bridge.loop import MessageLoop, open_stdin_reader
from mcpbridge.bridge.proxy import BridgeProxy
from mcpbridge.cli.arg_parser import build_proxy_parser, parse_proxy_args
from mcpbridge.cli.logging_setup import configure_logging, level_from_flags
from mcpbridge.cli.runtime import run_until_signal
from mcpbridge.config.loader import config_from_args
from mcpbridge.config.schema import ProxyConfig
from mcpbridge.core.errors import ConfigError
from mcpbridge.core.redaction import redact_token

logger = logging.getLogger(__name__)


def load_config_or_exit(argv: Sequence[str] | None, prog: str, description: str) -> ProxyConfig:
    """Parse arguments, configure logging and build the config.

    Prints usage and exits with status 1 when the configuration is unusable.
    """
    load_dotenv()
    args = parse_proxy_args(argv, prog=prog, description=description)
    configure_logging(level_from_flags(args.verbose, args.quiet))

    try:
        config = config_from_args(args)
    except ConfigError as e:
        logger.error("%s", e.message)
        build_proxy_parser(prog, description).print_help(sys.stderr)
        sys.exit(1)

    logger.debug("Using token %s", redact_token(config.auth.token))
    return config


async def run_proxy(config: ProxyConfig) -> None:
    """Run the stdio message loop until end of input or a shutdown signal."""
    proxy = BridgeProxy(config)
    proxy.log_startup()
    try:
        reader = await open_stdin_reader()
        await run_until_signal(MessageLoop(proxy).run(reader))
    finally:
        await proxy.aclose()


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point."""
    config = load_config_or_exit(
        argv,
        prog="mcpbridge",
        description="Bridge a stdio MCP client to a remote HTTP MCP server",
    )
    try:
        asyncio.run(run_proxy(config))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
