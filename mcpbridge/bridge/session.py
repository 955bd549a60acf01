"""MCP session id tracking.

The remote server may assign a session id in a response header. Once seen,
it is sent on every later request. A different id from the server replaces
the held one (last write wins).
"""

import logging
import re
from collections.abc import Mapping, MutableMapping

logger = logging.getLogger(__name__)

# Header used on outbound requests
SESSION_HEADER = "Mcp-Session-Id"

# Spellings servers are known to use, checked in order
SESSION_HEADER_VARIANTS: tuple[str, ...] = (
    "mcp-session-id",
    "Mcp-Session-Id",
    "MCP-Session-ID",
    "mcp_session_id",
)

# Max length prevents unbounded memory growth from malicious servers.
MAX_SESSION_ID_LENGTH: int = 256
# Session ids must be visible ASCII (0x21-0x7E).
SESSION_ID_PATTERN: re.Pattern[str] = re.compile(r"^[\x21-\x7e]+$")


class SessionTracker:
    """Holds at most one server-assigned session id."""

    def __init__(self) -> None:
        self._session_id: str | None = None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def extract(self, headers: Mapping[str, str]) -> None:
        """Capture the session id from response headers, if present.

        Args:
            headers: Response headers (httpx.Headers or a plain mapping).
        """
        session_id = None
        for name in SESSION_HEADER_VARIANTS:
            value = headers.get(name)
            if value:
                session_id = value
                break

        if session_id is None or not self._is_valid(session_id):
            return

        if self._session_id is None:
            self._session_id = session_id
            logger.info("Session ID captured: %s", session_id)
        elif self._session_id != session_id:
            logger.info("Session ID changed: %s -> %s", self._session_id, session_id)
            self._session_id = session_id

    def apply(self, headers: MutableMapping[str, str]) -> None:
        """Set the session header on an outbound request when one is held."""
        if self._session_id:
            headers[SESSION_HEADER] = self._session_id

    def _is_valid(self, session_id: str) -> bool:
        if len(session_id) > MAX_SESSION_ID_LENGTH:
            logger.warning(
                "Rejecting session ID: too long (%d > %d)",
                len(session_id),
                MAX_SESSION_ID_LENGTH,
            )
            return False
        if not SESSION_ID_PATTERN.match(session_id):
            logger.warning("Rejecting session ID: invalid format")
            return False
        return True
