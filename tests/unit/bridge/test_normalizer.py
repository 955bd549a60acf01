"""Tests for normalization of server output into JSON-RPC envelopes."""

import json

import pytest

from mcpbridge.bridge.normalizer import (
    MAX_ORIGINAL_EXCERPT,
    is_valid_envelope,
    normalize_body,
    normalize_payload,
)
from mcpbridge.bridge.protocol import INTERNAL_ERROR, INVALID_REQUEST, PARSE_ERROR


def assert_envelope(response: dict) -> None:
    assert response["jsonrpc"] == "2.0"
    assert ("result" in response) != ("error" in response)


class TestIsValidEnvelope:
    """Tests for is_valid_envelope()."""

    def test_success_envelope(self) -> None:
        assert is_valid_envelope({"jsonrpc": "2.0", "id": 1, "result": {"ok": True}})

    def test_error_envelope(self) -> None:
        assert is_valid_envelope(
            {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "nope"}}
        )

    def test_falsy_result_is_still_valid(self) -> None:
        """A result of {} or null is a legitimate answer."""
        assert is_valid_envelope({"jsonrpc": "2.0", "id": 1, "result": {}})
        assert is_valid_envelope({"jsonrpc": "2.0", "id": 1, "result": None})

    def test_wrong_version(self) -> None:
        assert not is_valid_envelope({"jsonrpc": "1.0", "id": 1, "result": {}})
        assert not is_valid_envelope({"id": 1, "result": {}})

    def test_both_result_and_error(self) -> None:
        assert not is_valid_envelope(
            {"jsonrpc": "2.0", "id": 1, "result": {}, "error": {"code": 1, "message": "x"}}
        )

    def test_neither_result_nor_error(self) -> None:
        assert not is_valid_envelope({"jsonrpc": "2.0", "id": 1})

    def test_exception_dump_with_version_member(self) -> None:
        """Exception fields next to an empty result mark an exception dump."""
        assert not is_valid_envelope(
            {"jsonrpc": "2.0", "id": 1, "result": None, "message": "Boom", "file": "a.php"}
        )

    def test_non_object(self) -> None:
        assert not is_valid_envelope([{"jsonrpc": "2.0"}])
        assert not is_valid_envelope("ok")


class TestNormalizePayload:
    """Tests for normalize_payload()."""

    def test_valid_envelope_passes_through(self) -> None:
        envelope = {"jsonrpc": "2.0", "id": 7, "result": {"tools": []}, "extra": 1}

        assert normalize_payload(envelope, json.dumps(envelope)) is envelope

    def test_exception_payload(self) -> None:
        """A framework exception dump becomes an Internal Error with details."""
        payload = {
            "message": "Undefined index: name",
            "exception": "ErrorException",
            "file": "/var/www/app.php",
            "line": 42,
            "trace": [],
        }

        response = normalize_payload(payload, json.dumps(payload))

        assert_envelope(response)
        assert response["id"] is None
        assert response["error"]["code"] == INTERNAL_ERROR
        assert response["error"]["message"] == "Undefined index: name"
        assert response["error"]["data"] == {
            "type": "server_error",
            "details": "ErrorException",
        }

    def test_exception_payload_keeps_valid_id(self) -> None:
        payload = {"id": "req-3", "message": "Server exploded"}

        response = normalize_payload(payload, json.dumps(payload))

        assert response["id"] == "req-3"
        assert response["error"]["data"]["details"] == "Server exploded"

    def test_exception_payload_without_message(self) -> None:
        payload = {"exception": "RuntimeException"}

        response = normalize_payload(payload, json.dumps(payload))

        assert response["error"]["message"] == "Server internal error"

    def test_non_string_message_is_serialized(self) -> None:
        payload = {"message": {"field": "required"}}

        response = normalize_payload(payload, json.dumps(payload))

        assert response["error"]["message"] == '{"field": "required"}'

    def test_validation_list(self) -> None:
        """A bare list of problems becomes an Invalid Request error."""
        payload = [{"field": "name", "error": "required"}]

        response = normalize_payload(payload, json.dumps(payload))

        assert_envelope(response)
        assert response["id"] is None
        assert response["error"]["code"] == INVALID_REQUEST
        assert response["error"]["message"] == "Server validation error"
        assert response["error"]["data"] == {"type": "validation_error", "details": payload}

    @pytest.mark.parametrize("payload", [42, "text", True, {"status": "ok"}])
    def test_anything_else_is_malformed(self, payload: object) -> None:
        raw = json.dumps(payload)

        response = normalize_payload(payload, raw)

        assert_envelope(response)
        assert response["error"]["code"] == INTERNAL_ERROR
        assert response["error"]["message"] == "Invalid server response"
        assert response["error"]["data"] == {"type": "malformed_response", "original": raw}

    def test_malformed_excerpt_is_truncated(self) -> None:
        payload = {"blob": "x" * 1000}
        raw = json.dumps(payload)

        response = normalize_payload(payload, raw)

        assert len(response["error"]["data"]["original"]) == MAX_ORIGINAL_EXCERPT

    def test_invalid_id_type_dropped(self) -> None:
        payload = {"id": {"nested": True}, "message": "bad"}

        response = normalize_payload(payload, json.dumps(payload))

        assert response["id"] is None


class TestNormalizeBody:
    """Tests for normalize_body()."""

    def test_valid_json_envelope(self) -> None:
        body = b'{"jsonrpc":"2.0","id":1,"result":{"ok":true}}'

        assert normalize_body(body) == {"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}

    def test_html_error_page(self) -> None:
        """Non-JSON bodies become a Parse error with an excerpt."""
        body = b"<html><body>502 Bad Gateway</body></html>"

        response = normalize_body(body)

        assert_envelope(response)
        assert response["id"] is None
        assert response["error"]["code"] == PARSE_ERROR
        assert response["error"]["message"] == "Invalid JSON response from server"
        assert response["error"]["data"] == {
            "type": "parse_error",
            "original": body.decode(),
        }

    def test_empty_body(self) -> None:
        response = normalize_body(b"")

        assert response["error"]["code"] == PARSE_ERROR
        assert response["error"]["data"]["original"] == ""

    def test_invalid_utf8_does_not_raise(self) -> None:
        response = normalize_body(b"\xff\xfe not json")

        assert response["error"]["code"] == PARSE_ERROR

    def test_long_body_excerpt_truncated(self) -> None:
        response = normalize_body("E" * 5000)

        assert len(response["error"]["data"]["original"]) == MAX_ORIGINAL_EXCERPT

    def test_exception_body(self) -> None:
        response = normalize_body(b'{"message":"Server Error"}')

        assert response["error"]["code"] == INTERNAL_ERROR
        assert response["error"]["message"] == "Server Error"
