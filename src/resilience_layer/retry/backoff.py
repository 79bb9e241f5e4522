"""
Backoff delay computation.

Pure function of (attempt, policy, rng). With jitter disabled the delay is
non-decreasing in ``attempt`` until it reaches ``max_delay``; it never
exceeds ``max_delay``.
"""

import random
from typing import Optional

from resilience_layer.retry.policy import RetryPolicy

_MAX_EXPONENT = 64


def compute_delay(
    attempt: int,
    policy: RetryPolicy,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Compute the delay before the next attempt.

    Args:
        attempt: Zero-based index of the attempt that just failed
        policy: Retry policy (base/max delay, exponential, jitter)
        rng: Injectable Random instance for deterministic testing

    Returns:
        Delay in seconds, within [0, policy.max_delay]

    Example:
        >>> policy = RetryPolicy(base_delay=0.1, jitter_enabled=False)
        >>> [compute_delay(a, policy) for a in range(3)]
        [0.1, 0.2, 0.4]
    """
    if attempt < 0:
        raise ValueError("attempt must be >= 0")

    if policy.exponential:
        # Exponent capped so the float product cannot overflow
        raw = policy.base_delay * (2 ** min(attempt, _MAX_EXPONENT))
    else:
        raw = policy.base_delay * (attempt + 1)

    delay = raw
    if policy.jitter_enabled and policy.jitter_factor > 0:
        _rng = rng or random.Random()
        spread = policy.jitter_factor * raw
        delay = max(0.0, raw + _rng.uniform(-spread, spread))

    return min(delay, policy.max_delay)
