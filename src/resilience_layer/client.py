"""
Composition of cache, breaker, retry and reporting for outbound calls.

Read path:
    get(key, op) -> cache.get_with_revalidate(key, call)
    call(key, op) -> executor.run(breaker.wrap(key, op))
                  -> terminal failure reported, then raised

Every retry attempt is admitted by the breaker separately, so a breaker
that trips mid-run stops the remaining attempts with CIRCUIT_OPEN.
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from resilience_layer.breaker.breaker import CircuitBreaker
from resilience_layer.cache.response_cache import ResponseCache
from resilience_layer.reporting.reporter import ErrorReporter
from resilience_layer.retry.executor import RetryExecutor
from resilience_layer.retry.policy import RetryPolicy

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class ResilientClient:
    """
    Runs keyed operations through breaker, retry and (for reads) the cache.

    Attributes:
        cache: Response cache for get()
        breaker: Per-key circuit breaker
        executor: Retry executor
        reporter: Receives every terminal failure
    """

    def __init__(
        self,
        cache: ResponseCache,
        breaker: CircuitBreaker,
        executor: RetryExecutor,
        reporter: ErrorReporter,
    ):
        self.cache = cache
        self.breaker = breaker
        self.executor = executor
        self.reporter = reporter

    async def call(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        policy: Optional[RetryPolicy] = None,
    ) -> T:
        """
        Run an operation through the breaker with retries (no caching).

        Args:
            key: Endpoint key, e.g. "POST /bookings"
            operation: Zero-argument async callable
            policy: Retry policy (executor default if None)

        Returns:
            The operation's result

        Raises:
            OperationError: Last error after retries were exhausted or refused,
                or CircuitOpenError when the breaker rejected the call
        """
        result = await self.executor.run(self.breaker.wrap(key, operation), policy)
        if result.success:
            return result.value  # type: ignore[return-value]

        error = result.error
        assert error is not None
        self.reporter.report(
            error,
            error.kind,
            {"key": key, "attempts": result.attempts},
        )
        logger.info(
            "Resilient call failed",
            key=key,
            error_kind=error.kind,
            attempts=result.attempts,
        )
        raise error

    async def get(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        ttl: Optional[float] = None,
        stale_after: Optional[float] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> T:
        """
        Cached read with stale-while-revalidate over call().

        Args:
            key: Endpoint key, also the cache key
            operation: Zero-argument async callable fetching the resource
            ttl: Cache lifetime (cache default if None)
            stale_after: Age from which reads trigger a background refresh
            policy: Retry policy for fetches

        Returns:
            Fresh, cached, or (when the fetch fails) stale value

        Raises:
            OperationError: Fetch failed and no cached entry exists
        """

        async def fetch() -> Any:
            return await self.call(key, operation, policy)

        return await self.cache.get_with_revalidate(key, fetch, ttl, stale_after)
