"""Configuration loading with fail-fast behavior.

Two sources feed the same ProxyConfig:
- command-line arguments, with environment variable fallbacks (stdio modes)
- HTTP query parameters, with environment variable fallbacks (HTTP front-end)

Both raise ConfigError when the result would be unusable, most commonly
when the server URL or the token is missing.
"""

import logging
import os
from argparse import Namespace
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from mcpbridge.config.schema import AuthConfig, AuthMethod, ProxyConfig, RetryConfig
from mcpbridge.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Environment fallbacks for the stdio entry points
ENV_SERVER_URL = "MCPBRIDGE_SERVER_URL"
ENV_API_TOKEN = "MCPBRIDGE_API_TOKEN"
ENV_AUTH_METHOD = "MCPBRIDGE_AUTH_METHOD"

# Query parameter names for the HTTP front-end (same names are read from the
# environment when the parameter is absent)
QUERY_SERVER_URL = "SERVER_URL"
QUERY_API_TOKEN = "API_TOKEN"
QUERY_AUTH_METHOD = "AUTH_METHOD"
QUERY_SKIP_SSL = "SKIP_SSL"
QUERY_MAX_RETRIES = "MAX_RETRIES"
QUERY_RETRY_DELAY = "RETRY_DELAY"
QUERY_DISABLE_CACHE = "DISABLE_CACHE"

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 30000


def parse_auth_method(value: str | None) -> AuthMethod:
    """Resolve an auth method name case-insensitively.

    Args:
        value: Name such as "bearer", "ApiKey" or "x-api-key". None or empty
            selects Bearer.

    Returns:
        The matching AuthMethod.

    Raises:
        ConfigError: If the name is not a known method.
    """
    if not value:
        return AuthMethod.BEARER
    for method in AuthMethod:
        if method.value.lower() == value.strip().lower():
            return method
    valid = ", ".join(m.value for m in AuthMethod)
    raise ConfigError(f"Unknown auth method {value!r} (expected one of: {valid})")


def _parse_int(value: Any, default: int, name: str) -> int:
    """Parse an integer setting, falling back to the default on bad input."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s value %r, using %d", name, value, default)
        return default


def _parse_flag(value: str | None) -> bool:
    return value is not None and value.strip().lower() == "true"


def build_config(
    server_url: str | None,
    token: str | None,
    auth_method: AuthMethod = AuthMethod.BEARER,
    skip_ssl: bool = False,
    protocol_version: str | None = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay_ms: float = DEFAULT_RETRY_DELAY_MS,
    disable_cache: bool = False,
) -> ProxyConfig:
    """Validate raw settings into a ProxyConfig.

    Raises:
        ConfigError: If the server URL or token is empty, or validation fails.
    """
    if not server_url:
        raise ConfigError("Server URL is required")
    if not token:
        raise ConfigError("API token is required")

    try:
        return ProxyConfig(
            server_url=server_url,
            auth=AuthConfig(method=auth_method, token=token),
            skip_ssl=skip_ssl,
            protocol_version=protocol_version or None,
            retry=RetryConfig(
                max_retries=max_retries,
                base_delay_ms=retry_delay_ms,
                max_delay_ms=max(DEFAULT_MAX_DELAY_MS, retry_delay_ms),
            ),
            disable_cache=disable_cache,
        )
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e


def config_from_args(
    args: Namespace, environ: Mapping[str, str] | None = None
) -> ProxyConfig:
    """Build a ProxyConfig from parsed CLI arguments.

    The URL, token and auth method fall back to MCPBRIDGE_SERVER_URL,
    MCPBRIDGE_API_TOKEN and MCPBRIDGE_AUTH_METHOD.

    Args:
        args: Namespace produced by mcpbridge.cli.arg_parser.
        environ: Environment mapping (defaults to os.environ).

    Raises:
        ConfigError: If required settings are missing or invalid.
    """
    env = os.environ if environ is None else environ

    server_url = args.server_url or env.get(ENV_SERVER_URL, "")
    token = args.token or env.get(ENV_API_TOKEN, "")
    auth_method = parse_auth_method(args.auth_method or env.get(ENV_AUTH_METHOD))

    return build_config(
        server_url=server_url,
        token=token,
        auth_method=auth_method,
        skip_ssl=args.skip_ssl,
        protocol_version=args.protocol_version,
        max_retries=args.max_retries,
        retry_delay_ms=args.retry_delay,
        disable_cache=args.no_cache,
    )


def config_from_query(
    query: Mapping[str, str], environ: Mapping[str, str] | None = None
) -> ProxyConfig:
    """Build a ProxyConfig from HTTP query parameters.

    Each parameter falls back to the environment variable of the same name.

    Args:
        query: Query parameters of the inbound request.
        environ: Environment mapping (defaults to os.environ).

    Raises:
        ConfigError: If required settings are missing or invalid.
    """
    env = os.environ if environ is None else environ

    def lookup(name: str) -> str | None:
        value = query.get(name)
        if value is None or value == "":
            value = env.get(name)
        return value

    return build_config(
        server_url=lookup(QUERY_SERVER_URL),
        token=lookup(QUERY_API_TOKEN),
        auth_method=parse_auth_method(lookup(QUERY_AUTH_METHOD)),
        skip_ssl=_parse_flag(lookup(QUERY_SKIP_SSL)),
        max_retries=_parse_int(lookup(QUERY_MAX_RETRIES), DEFAULT_MAX_RETRIES, QUERY_MAX_RETRIES),
        retry_delay_ms=_parse_int(
            lookup(QUERY_RETRY_DELAY), DEFAULT_RETRY_DELAY_MS, QUERY_RETRY_DELAY
        ),
        disable_cache=_parse_flag(lookup(QUERY_DISABLE_CACHE)),
    )
