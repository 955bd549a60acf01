"""Exponential backoff for retried outbound calls."""

import random

from mcpbridge.config.schema import RetryConfig

# Jitter spreads each delay by up to this fraction in either direction
JITTER_FRACTION: float = 0.25


def calculate_delay(
    attempt: int,
    policy: RetryConfig,
    rng: random.Random | None = None,
) -> float:
    """Calculate the delay before the next retry.

    Uses exponential backoff (base * 2^attempt) capped at the policy's
    maximum. With jitter enabled the capped value moves by a uniform random
    amount of up to +/-25%, and the result is clamped at zero.

    Args:
        attempt: Current attempt number (0-indexed).
        policy: Retry policy supplying base/max delay and jitter toggle.
        rng: Random source. Defaults to the module-level generator; pass a
            seeded Random for reproducible delays.

    Returns:
        Delay in milliseconds, never negative.
    """
    if attempt < 0:
        raise ValueError(f"attempt must be non-negative, got {attempt}")

    delay = min(policy.base_delay_ms * (2 ** attempt), policy.max_delay_ms)

    if policy.jitter:
        source = rng if rng is not None else random
        delay += source.uniform(-1.0, 1.0) * JITTER_FRACTION * delay

    return max(delay, 0.0)
