"""Tests for the pydantic configuration models."""

import pytest
from pydantic import ValidationError

from mcpbridge.config.schema import AuthConfig, AuthMethod, ProxyConfig, RetryConfig


def make_config(**overrides: object) -> ProxyConfig:
    values: dict[str, object] = {
        "server_url": "https://pm.example.com/mcp",
        "auth": AuthConfig(token="secret-token-value"),
    }
    values.update(overrides)
    return ProxyConfig(**values)


class TestAuthConfig:
    def test_defaults_to_bearer(self) -> None:
        assert AuthConfig(token="t").method is AuthMethod.BEARER

    def test_empty_token_rejected(self) -> None:
        with pytest.raises(ValidationError, match="token must not be empty"):
            AuthConfig(token="   ")


class TestRetryConfig:
    """Tests for RetryConfig bounds."""

    def test_defaults(self) -> None:
        retry = RetryConfig()

        assert retry.max_retries == 3
        assert retry.base_delay_ms == 1000
        assert retry.max_delay_ms == 30000
        assert retry.jitter is True

    def test_max_retries_bounds(self) -> None:
        assert RetryConfig(max_retries=0).max_retries == 0
        with pytest.raises(ValidationError):
            RetryConfig(max_retries=-1)
        with pytest.raises(ValidationError):
            RetryConfig(max_retries=11)

    def test_base_above_max_rejected(self) -> None:
        with pytest.raises(ValidationError, match="exceeds max_delay_ms"):
            RetryConfig(base_delay_ms=5000, max_delay_ms=1000)


class TestProxyConfig:
    """Tests for ProxyConfig validation."""

    def test_defaults(self) -> None:
        config = make_config()

        assert config.skip_ssl is False
        assert config.protocol_version is None
        assert config.cache_enabled is True
        assert config.is_https is True

    def test_disable_cache(self) -> None:
        assert make_config(disable_cache=True).cache_enabled is False

    def test_url_whitespace_stripped(self) -> None:
        assert make_config(server_url="  http://localhost:8080/mcp ").server_url == (
            "http://localhost:8080/mcp"
        )

    @pytest.mark.parametrize(
        "url", ["", "ftp://example.com/mcp", "example.com/mcp", "http://"]
    )
    def test_bad_urls_rejected(self, url: str) -> None:
        with pytest.raises(ValidationError):
            make_config(server_url=url)

    def test_unknown_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_config(verbose=True)

    def test_frozen(self) -> None:
        config = make_config()

        with pytest.raises(ValidationError):
            config.skip_ssl = True  # type: ignore[misc]
