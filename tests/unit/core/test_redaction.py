"""Tests for secrets redaction helpers."""

from mcpbridge.core.redaction import REDACTED, redact_headers, redact_token


class TestRedactToken:
    def test_long_token_keeps_prefix(self) -> None:
        assert redact_token("sk-abcdefghijklmnop") == f"sk-a...{REDACTED}"

    def test_short_token_fully_hidden(self) -> None:
        assert redact_token("abc123") == REDACTED

    def test_empty(self) -> None:
        assert redact_token("") == REDACTED
        assert redact_token(None) == REDACTED


class TestRedactHeaders:
    """Tests for redact_headers()."""

    def test_keeps_scheme(self) -> None:
        headers = redact_headers({"Authorization": "Bearer sk-abcdefghijklmnop"})

        assert headers == {"Authorization": f"Bearer sk-a...{REDACTED}"}

    def test_x_api_key(self) -> None:
        assert redact_headers({"X-API-Key": "short"}) == {"X-API-Key": REDACTED}

    def test_other_headers_untouched(self) -> None:
        headers = {"Content-Type": "application/json", "Mcp-Session-Id": "sess-1"}

        assert redact_headers(headers) == headers

    def test_does_not_mutate_input(self) -> None:
        original = {"authorization": "Token abcdefghijklmnop"}

        redact_headers(original)

        assert original == {"authorization": "Token abcdefghijklmnop"}
