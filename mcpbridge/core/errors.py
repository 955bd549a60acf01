"""Typed exception hierarchy for mcpbridge."""


class BridgeError(Exception):
    """Base class for all mcpbridge errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(BridgeError):
    """Raised for configuration issues (missing URL or token, validation failure)."""


class TransportError(BridgeError):
    """Raised when an outbound call fails at the network level.

    Covers DNS failures, refused connections, TLS errors and timeouts.
    Malformed server output is never reported this way; it is normalized
    into an error envelope instead.
    """


class ParseError(BridgeError):
    """Raised when a line from the client cannot be parsed as a request."""

    def __init__(self, message: str, request_id: str | int | None = None) -> None:
        self.request_id = request_id
        super().__init__(message)
