"""
Retry executor with exponential backoff and jitter.

Runs a caller-supplied zero-argument async operation up to
``max_retries + 1`` times. Between attempts it consults the policy's retry
predicate and sleeps for the backoff delay. Transient failures are recovered
silently; only the last error is surfaced.

Usage:
    executor = RetryExecutor(settings.retry_policy())
    result = await executor.run(lambda: client.get("/services"))
    if result.success:
        ...
"""

import asyncio
import functools
import random
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Sequence, TypeVar

import structlog

from resilience_layer.errors.classification import classify_exception
from resilience_layer.errors.exceptions import OperationError
from resilience_layer.models.enums import ErrorKind
from resilience_layer.models.timing import Clock, SleepFunc
from resilience_layer.monitoring.metrics import retry_attempts_total
from resilience_layer.retry.backoff import compute_delay
from resilience_layer.retry.metadata import RetryResult
from resilience_layer.retry.policy import RetryPolicy

if TYPE_CHECKING:
    from resilience_layer.reporting.reporter import ErrorReporter

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]

logger = structlog.get_logger(__name__)


class RetryExecutor:
    """
    Executes operations with retry and backoff.

    The executor is stateless between runs; one instance can serve every
    caller. Sleep, clock and RNG are injectable so tests can control time
    and jitter.

    Attributes:
        default_policy: Policy used when a call does not supply one
        reporter: Optional ErrorReporter notified by run_or_raise on terminal failure
    """

    def __init__(
        self,
        default_policy: Optional[RetryPolicy] = None,
        *,
        reporter: Optional["ErrorReporter"] = None,
        rng: Optional[random.Random] = None,
        sleep_func: Optional[SleepFunc] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize retry executor.

        Args:
            default_policy: Fallback policy (library defaults if None)
            reporter: ErrorReporter for terminal failures in run_or_raise
            rng: Random instance for jitter (seed it for deterministic tests)
            sleep_func: Async sleep used for backoff (default asyncio.sleep)
            clock: Monotonic clock in seconds (default time.monotonic)
        """
        self.default_policy = default_policy or RetryPolicy()
        self.reporter = reporter
        self._rng = rng or random.Random()
        self._sleep = sleep_func or asyncio.sleep
        self._clock = clock or time.monotonic

    def _should_retry(self, error: OperationError, policy: RetryPolicy) -> bool:
        # Breaker rejections are never retried, whatever the predicate says
        if error.kind == ErrorKind.CIRCUIT_OPEN:
            return False
        return policy.retry_predicate(error)

    async def run(
        self,
        operation: Operation[T],
        policy: Optional[RetryPolicy] = None,
    ) -> RetryResult[T]:
        """
        Run an operation with retries.

        Never raises for operation failures: the outcome, attempt count and
        elapsed time are returned in a RetryResult. Cancellation propagates.

        Args:
            operation: Zero-argument async callable
            policy: Per-call policy (default_policy if None)

        Returns:
            RetryResult with value on success or the last error on failure
        """
        policy = policy or self.default_policy
        start = self._clock()
        last_error: Optional[OperationError] = None
        attempts = 0

        for attempt in range(policy.max_retries + 1):
            attempts = attempt + 1
            try:
                value = await operation()
            except Exception as exc:
                error = classify_exception(exc)
                last_error = error

                if attempt == policy.max_retries or not self._should_retry(error, policy):
                    retry_attempts_total.labels(outcome="gave_up").inc()
                    break

                retry_attempts_total.labels(outcome="retried").inc()

                if policy.on_retry is not None:
                    policy.on_retry(error, attempt + 1)

                delay = compute_delay(attempt, policy, self._rng)
                logger.info(
                    "Retrying operation",
                    next_attempt=attempt + 1,
                    max_retries=policy.max_retries,
                    delay_seconds=round(delay, 3),
                    error=error,
                )
                await self._sleep(delay)
            else:
                retry_attempts_total.labels(outcome="success").inc()
                result: RetryResult[T] = RetryResult(
                    success=True,
                    value=value,
                    attempts=attempts,
                    total_elapsed=max(0.0, self._clock() - start),
                )
                if attempts > 1:
                    logger.info("Operation succeeded after retry", **result.to_log_fields())
                return result

        result = RetryResult(
            success=False,
            error=last_error,
            attempts=attempts,
            total_elapsed=max(0.0, self._clock() - start),
        )
        logger.warning("Operation failed", **result.to_log_fields(), error=last_error)
        return result

    async def run_or_raise(
        self,
        operation: Operation[T],
        policy: Optional[RetryPolicy] = None,
        context: Optional[str] = None,
    ) -> T:
        """
        Run an operation with retries and return its value.

        On terminal failure the last error is reported to the attached
        ErrorReporter (if any) and raised.

        Args:
            operation: Zero-argument async callable
            policy: Per-call policy (default_policy if None)
            context: Label for logs and the error report (e.g. "GET /services")

        Returns:
            Value of the successful attempt

        Raises:
            OperationError: Last error after retries were exhausted or refused
        """
        policy = policy or self.default_policy
        result = await self.run(operation, policy)
        if result.success:
            return result.value  # type: ignore[return-value]

        assert result.error is not None
        if self.reporter is not None:
            self.reporter.report(
                result.error,
                result.error.kind,
                {"context": context, "max_retries": policy.max_retries},
            )
        raise result.error

    def wrap(
        self,
        fn: Callable[..., Awaitable[T]],
        policy: Optional[RetryPolicy] = None,
    ) -> Callable[..., Awaitable[T]]:
        """
        Wrap an async function so every call is retried.

        Example:
            >>> fetch_services = executor.wrap(api.list_services)
            >>> services = await fetch_services(page=2)
        """

        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await self.run_or_raise(
                lambda: fn(*args, **kwargs),
                policy,
                context=getattr(fn, "__qualname__", None),
            )

        return wrapper

    async def run_batch(
        self,
        operations: Sequence[Operation[T]],
        policy: Optional[RetryPolicy] = None,
    ) -> list[RetryResult[T]]:
        """
        Run several operations concurrently, each with its own retry loop.

        Args:
            operations: Zero-argument async callables
            policy: Policy applied to every operation

        Returns:
            One RetryResult per operation, in input order
        """
        outcomes = await asyncio.gather(
            *(self.run(op, policy) for op in operations),
            return_exceptions=True,
        )

        results: list[RetryResult[T]] = []
        for outcome in outcomes:
            if isinstance(outcome, RetryResult):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                # Raised outside the operation itself (hook or predicate)
                results.append(
                    RetryResult(
                        success=False,
                        error=classify_exception(outcome),
                        attempts=1,
                        total_elapsed=0.0,
                    )
                )
            else:
                raise outcome
        return results
