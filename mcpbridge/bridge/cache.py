"""Time-bounded response cache for catalog-style list methods."""

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from mcpbridge.bridge.protocol import Request

logger = logging.getLogger(__name__)

# Entries older than this are treated as absent
CACHE_TTL_SECONDS: float = 5 * 60

# Read-only methods whose results are stable schema/catalog data
CACHEABLE_METHODS: frozenset[str] = frozenset({"tools/list", "resources/list", "prompts/list"})


@dataclass
class CacheEntry:
    """A cached envelope and the time it was stored."""

    response: dict[str, Any]
    created_at: float


def cache_key(request: Request) -> str:
    """Build the cache key for a request.

    The key is the method plus a compact JSON dump of the params (``{}``
    when absent). Object key order is preserved as sent, so two requests
    whose params differ only in key order get different keys.
    """
    params = request.params if request.params is not None else {}
    return f"{request.method}_{json.dumps(params, separators=(',', ':'))}"


def is_cacheable(request: Request, caching_enabled: bool) -> bool:
    """Whether this request's response may be served from the cache."""
    return caching_enabled and request.method in CACHEABLE_METHODS


class ResponseCache:
    """Map of cache key to envelope with lazy TTL eviction.

    Stored envelopes never carry a caller-specific id; callers substitute
    their own id on the way out. There is no size bound: entries leave only
    when they expire and are looked up again.

    Args:
        ttl: Entry lifetime in seconds.
        clock: Monotonic time source in seconds (injectable for tests).
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        """Return the cached envelope, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at >= self._ttl:
            del self._entries[key]
            logger.debug("Cache entry expired: %s", key)
            return None
        return entry.response

    def put(self, key: str, response: dict[str, Any]) -> None:
        """Store an envelope, replacing any previous entry for the key."""
        self._entries[key] = CacheEntry(response=response, created_at=self._clock())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
