"""Pydantic models for mcpbridge configuration validation.

A ProxyConfig is built once at startup (or once per inbound call in the HTTP
front-end) and is read-only afterwards, so every model here is frozen.
"""

from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AuthMethod(str, Enum):
    """How the token is presented to the remote server."""

    BEARER = "Bearer"  # Authorization: Bearer <token>
    API_KEY = "ApiKey"  # Authorization: ApiKey <token>
    TOKEN = "Token"  # Authorization: Token <token>
    X_API_KEY = "X-API-Key"  # X-API-Key: <token>


class AuthConfig(BaseModel):
    """Credentials for the remote server."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    method: AuthMethod = AuthMethod.BEARER
    """Header scheme used to send the token."""

    token: str
    """Secret token. Never logged in full."""

    @field_validator("token")
    @classmethod
    def token_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("token must not be empty")
        return v


class RetryConfig(BaseModel):
    """Retry policy for outbound calls.

    Delays are in milliseconds.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_retries: int = Field(default=3, ge=0, le=10)
    """Retries after the first attempt (total attempts = max_retries + 1)."""

    base_delay_ms: float = Field(default=1000.0, ge=0)
    """Delay before the first retry; doubled on each further retry."""

    max_delay_ms: float = Field(default=30000.0, ge=0)
    """Upper bound on the un-jittered delay."""

    jitter: bool = True
    """Perturb each delay by up to +/-25%."""

    @model_validator(mode="after")
    def validate_bounds(self) -> "RetryConfig":
        """Ensure the base delay does not exceed the ceiling."""
        if self.base_delay_ms > self.max_delay_ms:
            raise ValueError(
                f"RetryConfig: base_delay_ms ({self.base_delay_ms}) "
                f"exceeds max_delay_ms ({self.max_delay_ms})"
            )
        return self


class ProxyConfig(BaseModel):
    """Complete configuration for one proxy instance.

    Example:
        ProxyConfig(
            server_url="https://pm.example.com/mcp",
            auth=AuthConfig(method=AuthMethod.API_KEY, token="abc123"),
        )
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    server_url: str
    """Remote JSON-RPC endpoint (http:// or https://)."""

    auth: AuthConfig
    """Token and header scheme."""

    skip_ssl: bool = False
    """Disable TLS certificate verification for outbound calls."""

    protocol_version: str | None = None
    """MCP protocol version override, sent as MCP-Protocol-Version."""

    retry: RetryConfig = RetryConfig()
    """Retry policy."""

    disable_cache: bool = False
    """Turn off response caching of list operations."""

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        """Require a non-empty http(s) URL with a host."""
        v = v.strip()
        if not v:
            raise ValueError("server_url must not be empty")
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(
                f"server_url scheme '{parsed.scheme}' is not supported; use http:// or https://"
            )
        if not parsed.netloc:
            raise ValueError(f"server_url has no host: {v!r}")
        return v

    @property
    def cache_enabled(self) -> bool:
        return not self.disable_cache

    @property
    def is_https(self) -> bool:
        return urlparse(self.server_url).scheme == "https"
