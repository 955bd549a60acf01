"""Core types shared across mcpbridge: errors and redaction helpers."""

from mcpbridge.core.errors import BridgeError, ConfigError, ParseError, TransportError
from mcpbridge.core.redaction import redact_headers, redact_token

__all__ = [
    "BridgeError",
    "ConfigError",
    "ParseError",
    "TransportError",
    "redact_headers",
    "redact_token",
]
