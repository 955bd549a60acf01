"""Server-Sent Events parsing for streamed JSON-RPC responses.

The bridge treats an event stream as carrying one logical response: the
first event whose data is valid JSON wins. Later events, including the real
final result when a server emits JSON progress frames first, are never
read.
"""

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Events are separated by a blank line
EVENT_SEPARATOR = "\n\n"


@dataclass
class SSEEvent:
    """A single parsed event block."""

    type: str = ""
    data: str = ""


def parse_event(block: str) -> SSEEvent:
    """Parse one event block.

    ``event: `` sets the type; ``data: `` payloads are concatenated in order
    with the prefix removed. Other lines (comments, ids) are ignored.
    """
    event = SSEEvent()
    for line in block.split("\n"):
        line = line.rstrip("\r")
        if line.startswith("data: "):
            event.data += line[6:]
        elif line.startswith("event: "):
            event.type = line[7:]
    return event


def _decode_event(block: str) -> Any:
    """Return the JSON payload of a block, or None when it has none."""
    event = parse_event(block)
    if not event.data:
        return None
    try:
        return json.loads(event.data)
    except ValueError as e:
        logger.warning("Invalid JSON in SSE event %r: %s", event.type or "message", e)
        return None


async def first_json_event(chunks: AsyncIterator[str]) -> tuple[Any, str] | None:
    """Consume an event stream until an event carries JSON data.

    Args:
        chunks: Decoded text chunks of the response body.

    Returns:
        ``(payload, data_text)`` for the first JSON-bearing event, or None
        if the stream ended without one. A trailing block with no closing
        blank line is parsed as a final event.
    """
    buffer = ""
    async for chunk in chunks:
        buffer = (buffer + chunk).replace("\r\n", "\n")
        while EVENT_SEPARATOR in buffer:
            block, buffer = buffer.split(EVENT_SEPARATOR, 1)
            if not block.strip():
                continue
            payload = _decode_event(block)
            if payload is not None:
                return payload, parse_event(block).data

    if buffer.strip():
        payload = _decode_event(buffer)
        if payload is not None:
            return payload, parse_event(buffer).data

    return None
