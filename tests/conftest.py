"""Shared test fixtures and configuration for all tests.

This conftest.py provides the controllable time sources and settings used
across unit and integration tests.
"""

import asyncio
import random

import pytest

from resilience_layer.config import Settings


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep that records delays and advances a FakeClock instead of waiting."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        self.clock.advance(seconds)
        # Still yield so other tasks get scheduled
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock starting at t=0 that only moves when a test advances it."""
    return FakeClock()


@pytest.fixture
def recording_sleep(fake_clock: FakeClock) -> RecordingSleep:
    """Sleep function bound to fake_clock."""
    return RecordingSleep(fake_clock)


@pytest.fixture
def seeded_rng() -> random.Random:
    """Deterministic RNG for jitter."""
    return random.Random(42)


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with small, fast values.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.RETRY_MAX_RETRIES = 0
    """
    return Settings(
        # === Application ===
        APP_NAME="resilience-layer-test",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Response Cache ===
        CACHE_DEFAULT_TTL=10.0,
        CACHE_MAX_SIZE=5,
        CACHE_SWEEP_INTERVAL=30.0,

        # === Retry ===
        RETRY_MAX_RETRIES=2,
        RETRY_BASE_DELAY=0.1,
        RETRY_MAX_DELAY=1.0,
        RETRY_EXPONENTIAL=True,
        RETRY_JITTER_ENABLED=False,
        RETRY_JITTER_FACTOR=0.1,

        # === Circuit Breaker ===
        BREAKER_FAILURE_THRESHOLD=3,
        BREAKER_RESET_TIMEOUT=30.0,
        BREAKER_MONITORING_PERIOD=120.0,
        BREAKER_HALF_OPEN_MAX_PROBES=1,

        # === Error Reporting ===
        ERROR_MAX_RECORDS=20,
        ERROR_THROTTLE_WINDOW=60.0,
        ERROR_MAX_PER_WINDOW=30,
        ERROR_MAX_SAME_PER_WINDOW=5,
    )
