"""Unit test fixtures (components on fake time, mocks).

Provides components wired to the shared fake clock so tests can drive
time explicitly.
"""

import pytest
from unittest.mock import Mock

from resilience_layer.breaker.breaker import CircuitBreaker
from resilience_layer.breaker.state import CircuitBreakerPolicy
from resilience_layer.cache.response_cache import ResponseCache
from resilience_layer.reporting.reporter import ErrorReporter
from resilience_layer.retry.executor import RetryExecutor
from resilience_layer.retry.policy import RetryPolicy


@pytest.fixture
def mock_reporter():
    """Mock ErrorReporter (records report() calls)."""
    mock = Mock(spec=ErrorReporter)
    mock.report = Mock(return_value="err_mock")
    return mock


@pytest.fixture
def no_jitter_policy() -> RetryPolicy:
    """Exponential policy without jitter: delays 0.1, 0.2, 0.4..."""
    return RetryPolicy(max_retries=3, base_delay=0.1, max_delay=10.0, jitter_enabled=False)


@pytest.fixture
def executor(recording_sleep, fake_clock, seeded_rng, no_jitter_policy):
    """RetryExecutor on fake time."""
    return RetryExecutor(
        no_jitter_policy,
        rng=seeded_rng,
        sleep_func=recording_sleep,
        clock=fake_clock,
    )


@pytest.fixture
def breaker_policy() -> CircuitBreakerPolicy:
    return CircuitBreakerPolicy(
        failure_threshold=3,
        reset_timeout=30.0,
        monitoring_period=120.0,
        half_open_max_probes=1,
    )


@pytest.fixture
def breaker(breaker_policy, fake_clock):
    """CircuitBreaker on fake time."""
    return CircuitBreaker(breaker_policy, clock=fake_clock)


@pytest.fixture
def cache(fake_clock, recording_sleep):
    """ResponseCache on fake time (ttl 1s, 3 entries)."""
    return ResponseCache(
        default_ttl=1.0,
        max_size=3,
        name="test",
        clock=fake_clock,
        sleep_func=recording_sleep,
    )


@pytest.fixture
def reporter(fake_clock):
    """ErrorReporter on fake time."""
    return ErrorReporter(max_errors=5, clock=fake_clock)
