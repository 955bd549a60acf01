"""Bounded retries with exponential backoff around a dispatcher."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any

from mcpbridge.bridge.backoff import calculate_delay
from mcpbridge.bridge.protocol import Request
from mcpbridge.config.schema import RetryConfig
from mcpbridge.core.errors import TransportError

logger = logging.getLogger(__name__)

SendFn = Callable[[Request], Awaitable[dict[str, Any]]]
SleepFn = Callable[[float], Awaitable[None]]


class RetryOrchestrator:
    """Retry transport failures up to ``policy.max_retries`` times.

    Every TransportError is retried, whatever its cause; a rejected
    certificate is retried just like a reset connection. After the last
    attempt the final error is re-raised unchanged.

    Args:
        send: The single-attempt send coroutine (HTTPDispatcher.send).
        policy: Retry policy.
        sleep: Coroutine used to wait between attempts, in seconds.
        rng: Random source for backoff jitter.
    """

    def __init__(
        self,
        send: SendFn,
        policy: RetryConfig,
        sleep: SleepFn = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._send = send
        self._policy = policy
        self._sleep = sleep
        self._rng = rng

    async def send_with_retry(self, request: Request, tag: str = "") -> dict[str, Any]:
        """Send with retries.

        Args:
            request: Request to forward.
            tag: Log correlation prefix, e.g. ``"[3] "``.

        Returns:
            The response envelope from the first successful attempt.

        Raises:
            TransportError: When all ``max_retries + 1`` attempts fail.
        """
        total = self._policy.max_retries + 1
        attempt = 0
        while True:
            try:
                return await self._send(request)
            except TransportError as e:
                if attempt >= self._policy.max_retries:
                    logger.error("%sRequest failed after %d attempt(s): %s", tag, total, e)
                    raise
                delay_ms = calculate_delay(attempt, self._policy, self._rng)
                logger.warning(
                    "%sRequest failed (attempt %d/%d), retrying in %.0fms...",
                    tag,
                    attempt + 1,
                    total,
                    delay_ms,
                )
                await self._sleep(delay_ms / 1000)
                attempt += 1
