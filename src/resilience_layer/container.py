"""
Wiring of the resilience layer from settings.

There are no module-level service instances: build_resilience_layer creates
one set of components and the caller owns its lifecycle.

Usage:
    layer = build_resilience_layer(get_settings())
    async with layer:
        services = await layer.client.get(endpoint_key("GET", "/services"), op)
"""

import random
from dataclasses import dataclass
from typing import Optional

import structlog

from resilience_layer.breaker.breaker import CircuitBreaker
from resilience_layer.cache.response_cache import ResponseCache
from resilience_layer.client import ResilientClient
from resilience_layer.config import Settings, get_settings
from resilience_layer.logging_config import configure_logging
from resilience_layer.models.timing import Clock, SleepFunc
from resilience_layer.reporting.reporter import ErrorReporter
from resilience_layer.retry.executor import RetryExecutor

logger = structlog.get_logger(__name__)


@dataclass
class ResilienceLayer:
    """All components of one resilience layer instance."""

    settings: Settings
    reporter: ErrorReporter
    executor: RetryExecutor
    breaker: CircuitBreaker
    cache: ResponseCache
    client: ResilientClient

    async def start(self) -> None:
        """Start background work (the cache sweeper)."""
        self.cache.start_sweeper(self.settings.CACHE_SWEEP_INTERVAL)
        logger.info(
            "Resilience layer started",
            environment=self.settings.ENVIRONMENT,
            cache_max_size=self.settings.CACHE_MAX_SIZE,
            retry_max_retries=self.settings.RETRY_MAX_RETRIES,
            breaker_failure_threshold=self.settings.BREAKER_FAILURE_THRESHOLD,
        )

    async def aclose(self) -> None:
        """Stop the sweeper and wait for in-flight cache fetches."""
        await self.cache.aclose()
        logger.info("Resilience layer stopped")

    async def __aenter__(self) -> "ResilienceLayer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def build_resilience_layer(
    settings: Optional[Settings] = None,
    *,
    clock: Optional[Clock] = None,
    sleep_func: Optional[SleepFunc] = None,
    rng: Optional[random.Random] = None,
    configure_logs: bool = False,
) -> ResilienceLayer:
    """
    Build a resilience layer from settings.

    Args:
        settings: Settings (process settings if None)
        clock: Clock shared by every component (defaults per component if None)
        sleep_func: Async sleep for retry backoff and the cache sweeper
        rng: Random instance for retry jitter
        configure_logs: Also configure structlog from LOG_LEVEL/ENVIRONMENT

    Returns:
        ResilienceLayer, not yet started
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT, settings.APP_NAME)

    reporter = ErrorReporter(
        max_errors=settings.ERROR_MAX_RECORDS,
        throttle_config=settings.throttle_config(),
        clock=clock,
    )
    executor = RetryExecutor(
        settings.retry_policy(),
        reporter=reporter,
        rng=rng,
        sleep_func=sleep_func,
        clock=clock,
    )
    breaker = CircuitBreaker(
        settings.breaker_policy(),
        reporter=reporter,
        clock=clock,
    )
    cache = ResponseCache(
        default_ttl=settings.CACHE_DEFAULT_TTL,
        max_size=settings.CACHE_MAX_SIZE,
        name=settings.APP_NAME,
        clock=clock,
        sleep_func=sleep_func,
    )
    client = ResilientClient(cache, breaker, executor, reporter)

    return ResilienceLayer(
        settings=settings,
        reporter=reporter,
        executor=executor,
        breaker=breaker,
        cache=cache,
        client=client,
    )
