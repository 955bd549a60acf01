"""Outbound HTTP(S) dispatch of JSON-RPC requests.

Each call is a single POST of the request envelope. The server may answer
with a plain JSON body or with an event stream. Plain bodies are normalized
into a valid envelope; for a stream, the first JSON object event is returned
as sent, even a progress notification. Only network-level failures (DNS,
refused connections, TLS errors) and timeouts raise.
"""

import asyncio
import json
import logging
from typing import Any

import httpx

from mcpbridge.bridge.normalizer import normalize_body, normalize_payload
from mcpbridge.bridge.protocol import Request
from mcpbridge.bridge.session import SessionTracker
from mcpbridge.bridge.sse import first_json_event
from mcpbridge.config.schema import AuthMethod, ProxyConfig
from mcpbridge.core.errors import TransportError
from mcpbridge.core.redaction import redact_headers

logger = logging.getLogger(__name__)

# Per-request timeout covering connect, send and the whole body (seconds)
REQUEST_TIMEOUT: float = 5 * 60

ACCEPT_HEADER = "application/json, text/event-stream"
PROTOCOL_VERSION_HEADER = "MCP-Protocol-Version"
EVENT_STREAM_TYPE = "text/event-stream"


def build_auth_header(method: AuthMethod, token: str) -> dict[str, str]:
    """Return the single auth header for the configured method."""
    match method:
        case AuthMethod.X_API_KEY:
            return {"X-API-Key": token}
        case AuthMethod.API_KEY:
            return {"Authorization": f"ApiKey {token}"}
        case AuthMethod.TOKEN:
            return {"Authorization": f"Token {token}"}
        case _:
            return {"Authorization": f"Bearer {token}"}


class HTTPDispatcher:
    """Send one request envelope per call to the configured server.

    The httpx client is created lazily and reused for connection pooling.
    TLS verification follows ``config.skip_ssl``.

    Attributes:
        config: Proxy configuration (URL, auth, TLS, protocol version).
        session: Tracker that supplies and captures the MCP session id.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        config: ProxyConfig,
        session: SessionTracker,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            config: Proxy configuration.
            session: Session tracker shared with the owning proxy.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (e.g. httpx.MockTransport).
        """
        self._config = config
        self._session = session
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {
                "timeout": self._timeout,
                "verify": not self._config.skip_ssl,
                "follow_redirects": False,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    def build_headers(self) -> dict[str, str]:
        """Build request headers: content negotiation, auth, session, version."""
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": ACCEPT_HEADER,
        }
        headers.update(build_auth_header(self._config.auth.method, self._config.auth.token))
        if self._config.protocol_version:
            headers[PROTOCOL_VERSION_HEADER] = self._config.protocol_version
        self._session.apply(headers)
        return headers

    async def send(self, request: Request) -> dict[str, Any]:
        """POST the request and return the normalized response envelope.

        Args:
            request: The request (or notification) to forward.

        Returns:
            A JSON-RPC response envelope, or the first JSON object of an
            event stream.

        Raises:
            TransportError: On network failure, TLS failure or timeout, or
                when an event stream ends without any JSON event.
        """
        body = json.dumps(request.to_dict(), separators=(",", ":")).encode("utf-8")
        headers = self.build_headers()
        headers["Content-Length"] = str(len(body))

        logger.debug(
            "POST %s method=%s headers=%s",
            self._config.server_url,
            request.method,
            redact_headers(headers),
        )

        try:
            return await asyncio.wait_for(
                self._exchange(body, headers), timeout=self._timeout
            )
        except TimeoutError as e:
            logger.error("Request timeout after %.0fs", self._timeout)
            raise TransportError(f"Request timeout after {self._timeout:.0f}s") from e
        except httpx.TimeoutException as e:
            logger.error("Request timeout: %s", e)
            raise TransportError(f"Request timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Request error: %s", e)
            raise TransportError(f"Request error: {e}") from e

    async def _exchange(self, body: bytes, headers: dict[str, str]) -> dict[str, Any]:
        client = self._ensure_client()
        async with client.stream(
            "POST", self._config.server_url, content=body, headers=headers
        ) as response:
            self._session.extract(response.headers)

            content_type = response.headers.get("content-type", "")
            logger.debug("HTTP %d (%s)", response.status_code, content_type or "no content-type")

            if EVENT_STREAM_TYPE in content_type:
                found = await first_json_event(response.aiter_text())
                if found is None:
                    raise TransportError("Event stream ended without a JSON message")
                payload, raw = found
                if isinstance(payload, dict):
                    return payload
                return normalize_payload(payload, raw)

            return normalize_body(await response.aread())

    async def aclose(self) -> None:
        """Close the HTTP client. Safe to call multiple times."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
