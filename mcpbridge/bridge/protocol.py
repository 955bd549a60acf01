"""JSON-RPC 2.0 envelope parsing and construction.

Requests coming from the client are parsed into an immutable Request.
Responses stay plain dicts: server envelopes are passed through unchanged,
so they may carry members this module knows nothing about.
"""

import json
from dataclasses import dataclass
from typing import Any

from mcpbridge.core.errors import ParseError

JSONRPC_VERSION = "2.0"

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# MCP method names with special handling
NOTIFICATION_PREFIX = "notifications/"
INITIALIZE_METHOD = "initialize"
INITIALIZED_NOTIFICATION = "notifications/initialized"

RequestId = str | int | None


class InvalidRequest(ParseError):
    """The line was valid JSON but not a usable request object."""


@dataclass(frozen=True)
class Request:
    """JSON-RPC 2.0 request.

    Attributes:
        method: Name of the method to invoke.
        params: Optional parameters, forwarded untouched.
        id: Request identifier. None means notification (no response expected).
        jsonrpc: Protocol version as sent by the client.
    """

    method: str
    params: dict[str, Any] | list[Any] | None = None
    id: RequestId = None
    jsonrpc: str = JSONRPC_VERSION

    @property
    def is_notification(self) -> bool:
        return self.id is None

    @property
    def is_namespaced_notification(self) -> bool:
        """True for methods in the ``notifications/`` namespace."""
        return self.method.startswith(NOTIFICATION_PREFIX)

    def to_dict(self) -> dict[str, Any]:
        """Wire form of the request."""
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            data["params"] = self.params
        if self.id is not None:
            data["id"] = self.id
        return data


def parse_request(line: str) -> Request:
    """Parse a JSON line into a Request.

    Args:
        line: A single line of JSON text.

    Returns:
        A parsed Request object.

    Raises:
        ParseError: If the line is not valid JSON.
        InvalidRequest: If the JSON is not a request object. Carries the id
            when one could be read.
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}") from e
    return request_from_dict(data)


def request_from_dict(data: Any) -> Request:
    """Validate an already-decoded JSON value as a Request.

    Raises:
        InvalidRequest: If the value is not a request object.
    """
    if not isinstance(data, dict):
        raise InvalidRequest("Request must be a JSON object")

    request_id = data.get("id")
    if request_id is not None and (
        isinstance(request_id, bool) or not isinstance(request_id, (str, int, float))
    ):
        raise InvalidRequest(
            f"id must be string, number, or null, got: {type(request_id).__name__}"
        )

    method = data.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequest("method must be a non-empty string", request_id)

    params = data.get("params")
    if params is not None and not isinstance(params, (dict, list)):
        raise InvalidRequest(
            f"params must be object or array, got: {type(params).__name__}", request_id
        )

    return Request(
        method=method,
        params=params,
        id=request_id,
        jsonrpc=data.get("jsonrpc", JSONRPC_VERSION),
    )


def make_error_response(
    request_id: RequestId,
    code: int,
    message: str,
    data: Any = None,
) -> dict[str, Any]:
    """Create an error envelope.

    Args:
        request_id: The id from the original request.
        code: JSON-RPC error code.
        message: Human-readable error message.
        data: Optional additional error data.
    """
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def make_success_response(request_id: RequestId, result: Any) -> dict[str, Any]:
    """Create a success envelope."""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def make_notification(method: str, params: dict[str, Any] | None = None) -> Request:
    """Create a notification (no id) to send upstream."""
    return Request(method=method, params=params if params is not None else {})


def with_request_id(response: dict[str, Any], request_id: RequestId) -> dict[str, Any]:
    """Return a copy of the envelope answering ``request_id``.

    The envelope is returned as-is when ``request_id`` is None, so the
    server's own id (or null) survives for uncorrelated replies.
    """
    if request_id is None:
        return response
    return {**response, "id": request_id}


def serialize_response(response: dict[str, Any]) -> str:
    """Serialize an envelope to a single JSON line (no trailing newline)."""
    return json.dumps(response, separators=(",", ":"))
