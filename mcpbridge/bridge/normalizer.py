"""Conversion of arbitrary server output into valid JSON-RPC envelopes.

Remote servers do not always answer with a protocol envelope: a crashing
PHP backend returns an HTML page or an exception dump, a validation layer
returns a bare list of problems. The client must never see those. Every
body passes through normalize_body(), which always returns an envelope with
``jsonrpc == "2.0"`` and exactly one of ``result``/``error``.

Nothing in this module raises.
"""

import json
import logging
from typing import Any

from mcpbridge.bridge.protocol import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    PARSE_ERROR,
    make_error_response,
)

logger = logging.getLogger(__name__)

# Raw body excerpt length kept in error data
MAX_ORIGINAL_EXCERPT: int = 200

# Fields of a framework exception dump that never belong in an envelope
EXCEPTION_FIELDS: tuple[str, ...] = ("message", "exception", "file", "line", "trace")


def decode_body(body: bytes | str) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def is_valid_envelope(data: Any) -> bool:
    """Check that a parsed payload is a well-formed response envelope.

    Requires ``jsonrpc == "2.0"`` and exactly one of ``result``/``error``.
    Payloads carrying string exception fields alongside a falsy
    ``result``/``error`` are rejected too: they are exception dumps that
    happen to include a version member.
    """
    if not isinstance(data, dict):
        return False
    if data.get("jsonrpc") != JSONRPC_VERSION:
        return False
    if ("result" in data) == ("error" in data):
        return False
    if not data.get("result") and not data.get("error"):
        if any(isinstance(data.get(field), str) for field in EXCEPTION_FIELDS):
            return False
    return True


def normalize_payload(parsed: Any, raw: str) -> dict[str, Any]:
    """Normalize an already-parsed payload.

    Args:
        parsed: Result of json.loads on the body.
        raw: The body text, used for excerpts in error data.

    Returns:
        The payload unchanged when it is a valid envelope, otherwise an
        error envelope describing what the server sent.
    """
    if is_valid_envelope(parsed):
        return parsed

    request_id = None
    if isinstance(parsed, dict):
        candidate = parsed.get("id")
        if candidate is None or (
            isinstance(candidate, (str, int, float)) and not isinstance(candidate, bool)
        ):
            request_id = candidate

    if isinstance(parsed, dict) and (parsed.get("message") or parsed.get("exception")):
        message = parsed.get("message") or "Server internal error"
        if not isinstance(message, str):
            message = json.dumps(message)
        details = parsed.get("exception") or parsed.get("message")
        logger.warning("Server returned an exception payload: %s", message)
        return make_error_response(
            request_id,
            INTERNAL_ERROR,
            message,
            {"type": "server_error", "details": details},
        )

    if isinstance(parsed, list):
        logger.warning("Server returned a validation error list (%d items)", len(parsed))
        return make_error_response(
            None,
            INVALID_REQUEST,
            "Server validation error",
            {"type": "validation_error", "details": parsed},
        )

    logger.warning("Server returned a malformed response")
    return make_error_response(
        request_id,
        INTERNAL_ERROR,
        "Invalid server response",
        {"type": "malformed_response", "original": raw[:MAX_ORIGINAL_EXCERPT]},
    )


def normalize_body(body: bytes | str) -> dict[str, Any]:
    """Turn a raw response body into a valid envelope.

    Args:
        body: The full response body as received.

    Returns:
        A JSON-RPC 2.0 response envelope.
    """
    raw = decode_body(body)
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        logger.warning("Server returned invalid JSON (%d bytes)", len(raw))
        return make_error_response(
            None,
            PARSE_ERROR,
            "Invalid JSON response from server",
            {"type": "parse_error", "original": raw[:MAX_ORIGINAL_EXCERPT]},
        )
    return normalize_payload(parsed, raw)
