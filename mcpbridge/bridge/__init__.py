"""Request/response bridging engine.

Usage:
    from mcpbridge.bridge import BridgeProxy, MessageLoop, open_stdin_reader

    async with BridgeProxy(config) as proxy:
        await MessageLoop(proxy).run(await open_stdin_reader())
"""

from mcpbridge.bridge.backoff import calculate_delay
from mcpbridge.bridge.cache import ResponseCache, cache_key, is_cacheable
from mcpbridge.bridge.loop import MessageLoop, Route, classify, open_stdin_reader
from mcpbridge.bridge.normalizer import normalize_body, normalize_payload
from mcpbridge.bridge.protocol import Request, parse_request
from mcpbridge.bridge.proxy import BridgeProxy
from mcpbridge.bridge.retry import RetryOrchestrator
from mcpbridge.bridge.session import SessionTracker
from mcpbridge.bridge.transport import HTTPDispatcher

__all__ = [
    "BridgeProxy",
    "HTTPDispatcher",
    "MessageLoop",
    "Request",
    "ResponseCache",
    "RetryOrchestrator",
    "Route",
    "SessionTracker",
    "cache_key",
    "calculate_delay",
    "classify",
    "is_cacheable",
    "normalize_body",
    "normalize_payload",
    "open_stdin_reader",
    "parse_request",
]
