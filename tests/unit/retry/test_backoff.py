"""
Unit tests for backoff delay computation and retry policy validation.
"""

import random

import pytest

from resilience_layer.retry.backoff import compute_delay
from resilience_layer.retry.policy import RetryPolicy


def test_exponential_delays_without_jitter():
    """Test base * 2^attempt growth."""
    policy = RetryPolicy(base_delay=0.1, max_delay=10.0, jitter_enabled=False)

    delays = [compute_delay(a, policy) for a in range(4)]

    assert delays == pytest.approx([0.1, 0.2, 0.4, 0.8])


def test_linear_delays_without_jitter():
    """Test base * (attempt + 1) growth when exponential is off."""
    policy = RetryPolicy(base_delay=0.5, exponential=False, jitter_enabled=False)

    assert [compute_delay(a, policy) for a in range(3)] == pytest.approx([0.5, 1.0, 1.5])


def test_delay_capped_at_max_delay():
    """Test no delay exceeds max_delay, even for huge attempt numbers."""
    policy = RetryPolicy(base_delay=1.0, max_delay=10.0, jitter_enabled=False)

    assert compute_delay(4, policy) == 10.0
    assert compute_delay(10_000, policy) == 10.0


def test_delays_monotone_until_cap():
    """Test non-jittered delays never decrease."""
    policy = RetryPolicy(base_delay=0.3, max_delay=5.0, jitter_enabled=False)

    delays = [compute_delay(a, policy) for a in range(12)]

    assert delays == sorted(delays)
    assert max(delays) == 5.0


def test_jitter_stays_within_factor():
    """Test jittered delay is within +/- jitter_factor of the raw delay."""
    policy = RetryPolicy(base_delay=1.0, max_delay=100.0, jitter_factor=0.1)
    rng = random.Random(7)

    for attempt in range(5):
        raw = 2 ** attempt
        delay = compute_delay(attempt, policy, rng)
        assert raw * 0.9 <= delay <= raw * 1.1


def test_jitter_deterministic_with_seeded_rng():
    """Test the same seed yields the same delays."""
    policy = RetryPolicy(base_delay=1.0, jitter_factor=0.5)

    first = [compute_delay(a, policy, random.Random(3)) for a in range(3)]
    second = [compute_delay(a, policy, random.Random(3)) for a in range(3)]

    assert first == second


def test_jitter_never_negative():
    """Test full-range jitter is clamped at zero."""
    policy = RetryPolicy(base_delay=1.0, jitter_factor=1.0)
    rng = random.Random(0)

    assert all(compute_delay(0, policy, rng) >= 0.0 for _ in range(200))


def test_negative_attempt_rejected():
    with pytest.raises(ValueError):
        compute_delay(-1, RetryPolicy())


# ============================================================================
# RetryPolicy
# ============================================================================


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"base_delay": -0.1},
        {"max_delay": -1.0},
        {"jitter_factor": 1.5},
    ],
)
def test_policy_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


def test_policy_with_overrides_returns_new_policy():
    """Test overrides copy the policy and re-validate."""
    policy = RetryPolicy()

    changed = policy.with_overrides(max_retries=0)

    assert changed.max_retries == 0
    assert policy.max_retries == 3
    with pytest.raises(ValueError):
        policy.with_overrides(jitter_factor=-0.1)
