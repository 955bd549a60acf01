"""Configuration module for mcpbridge."""

from mcpbridge.config.loader import (
    build_config,
    config_from_args,
    config_from_query,
    parse_auth_method,
)
from mcpbridge.config.schema import AuthConfig, AuthMethod, ProxyConfig, RetryConfig

__all__ = [
    "AuthConfig",
    "AuthMethod",
    "ProxyConfig",
    "RetryConfig",
    "build_config",
    "config_from_args",
    "config_from_query",
    "parse_auth_method",
]
