"""Argument parsing for the mcpbridge command-line entry points."""

import argparse
from collections.abc import Sequence

from mcpbridge.config.loader import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    ENV_API_TOKEN,
    ENV_AUTH_METHOD,
    ENV_SERVER_URL,
)
from mcpbridge.config.schema import AuthMethod

PROXY_EPILOG = f"""\
Environment Variables:
  {ENV_SERVER_URL}      Server URL (alternative to <url> argument)
  {ENV_API_TOKEN}       API token (alternative to --token)
  {ENV_AUTH_METHOD}     Auth method (alternative to --auth-method)

Examples:
  %(prog)s https://pm.example.com/mcp --token abc123
  %(prog)s https://pm.example.com/mcp --token abc123 --auth-method ApiKey
  %(prog)s https://pm.example.com/mcp --token abc123 --max-retries 5 --no-cache
"""


def add_logging_args(parser: argparse.ArgumentParser) -> None:
    """Add --verbose/--quiet arguments to a parser."""
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log debug output to stderr",
    )
    group.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors",
    )


def add_proxy_args(parser: argparse.ArgumentParser) -> None:
    """Add the remote-server arguments shared by the stdio entry points."""
    parser.add_argument(
        "server_url",
        nargs="?",
        default="",
        metavar="url",
        help="Remote MCP server URL",
    )
    parser.add_argument(
        "--token",
        default="",
        help="API token for authentication",
    )
    parser.add_argument(
        "--auth-method",
        dest="auth_method",
        choices=[m.value for m in AuthMethod],
        default=None,
        help="Authentication method (default: Bearer)",
    )
    parser.add_argument(
        "--insecure", "--skip-ssl",
        dest="skip_ssl",
        action="store_true",
        help="Skip SSL certificate verification",
    )
    parser.add_argument(
        "--protocol-version",
        dest="protocol_version",
        default=None,
        help="MCP protocol version sent to the server",
    )
    parser.add_argument(
        "--max-retries",
        dest="max_retries",
        type=int,
        default=DEFAULT_MAX_RETRIES,
        help=f"Maximum retry attempts (default: {DEFAULT_MAX_RETRIES})",
    )
    parser.add_argument(
        "--retry-delay",
        dest="retry_delay",
        type=int,
        default=DEFAULT_RETRY_DELAY_MS,
        help=f"Base retry delay in milliseconds (default: {DEFAULT_RETRY_DELAY_MS})",
    )
    parser.add_argument(
        "--no-cache",
        dest="no_cache",
        action="store_true",
        help="Disable response caching",
    )
    add_logging_args(parser)


def build_proxy_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description=description,
        epilog=PROXY_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_proxy_args(parser)
    return parser


def parse_proxy_args(
    argv: Sequence[str] | None = None,
    prog: str = "mcpbridge",
    description: str = "Bridge a stdio MCP client to a remote HTTP MCP server",
) -> argparse.Namespace:
    """Parse arguments for the stdio proxy and tool-server entry points."""
    return build_proxy_parser(prog, description).parse_args(argv)


def parse_http_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse arguments for the HTTP front-end."""
    parser = argparse.ArgumentParser(
        prog="mcpbridge-http",
        description="Serve the MCP bridge over HTTP (configuration via query parameters)",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: $PORT or 3000)",
    )
    add_logging_args(parser)
    return parser.parse_args(argv)
