"""
Per-key circuit breaker.

State machine per endpoint key, evaluated lazily at call time:

    CLOSED    --(consecutive_failures >= failure_threshold)--> OPEN
    OPEN      --(now - last_failure_time >= reset_timeout)---> HALF_OPEN
    HALF_OPEN --(first successful probe)---------------------> CLOSED
    HALF_OPEN --(any failed probe)---------------------------> OPEN

Only probes decide HALF_OPEN. A call admitted while CLOSED that finishes
after the key reopened updates counters and timestamps only.

In CLOSED, failures older than ``monitoring_period`` are forgotten. This
sliding forgiveness and the OPEN reset timeout are independent mechanisms.

Each key has its own lock. The lock guards only synchronous bookkeeping and
is never held across an await, so concurrent callers for different keys
never contend and callers for the same key see serialized transitions.
"""

import functools
import threading
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Mapping, Optional, TypeVar

import structlog

from resilience_layer.breaker.state import (
    BreakerSnapshot,
    CircuitBreakerPolicy,
    CircuitBreakerRecord,
)
from resilience_layer.errors.exceptions import CircuitOpenError
from resilience_layer.models.enums import CircuitState, ErrorKind
from resilience_layer.models.timing import Clock
from resilience_layer.monitoring.metrics import (
    circuit_rejections_total,
    circuit_transitions_total,
)

if TYPE_CHECKING:
    from resilience_layer.reporting.reporter import ErrorReporter

T = TypeVar("T")

FailurePredicate = Callable[[BaseException], bool]

logger = structlog.get_logger(__name__)


def _count_every_failure(exc: BaseException) -> bool:
    return True


class CircuitBreaker:
    """
    Registry of per-key circuit breaker records.

    Records are created lazily on first use and live as long as the breaker.

    Attributes:
        default_policy: Policy for keys without a specific one
        reporter: Optional ErrorReporter told about every trip to OPEN
    """

    def __init__(
        self,
        default_policy: Optional[CircuitBreakerPolicy] = None,
        *,
        policies: Optional[Mapping[str, CircuitBreakerPolicy]] = None,
        reporter: Optional["ErrorReporter"] = None,
        failure_predicate: Optional[FailurePredicate] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize circuit breaker registry.

        Args:
            default_policy: Fallback policy (library defaults if None)
            policies: Per-key policy overrides
            reporter: ErrorReporter notified when a key trips open
            failure_predicate: Decides whether an exception counts as a failure
                (default: every exception counts)
            clock: Clock in seconds (default time.monotonic)
        """
        self.default_policy = default_policy or CircuitBreakerPolicy()
        self.reporter = reporter
        self._policies: dict[str, CircuitBreakerPolicy] = dict(policies or {})
        self._counts_as_failure = failure_predicate or _count_every_failure
        self._clock = clock or time.monotonic
        self._records: dict[str, CircuitBreakerRecord] = {}
        self._registry_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Record management
    # ------------------------------------------------------------------

    def _get_record(self, key: str) -> CircuitBreakerRecord:
        record = self._records.get(key)
        if record is not None:
            return record
        with self._registry_lock:
            record = self._records.get(key)
            if record is None:
                policy = self._policies.get(key, self.default_policy)
                record = CircuitBreakerRecord(policy=policy)
                self._records[key] = record
            return record

    def configure(self, key: str, policy: CircuitBreakerPolicy) -> None:
        """Set the policy for one key (applies to an existing record too)."""
        with self._registry_lock:
            self._policies[key] = policy
        record = self._get_record(key)
        with record.lock:
            record.policy = policy

    def reset(self, key: str) -> None:
        """Force a key back to a fresh CLOSED state."""
        record = self._get_record(key)
        with record.lock:
            if record.state != CircuitState.CLOSED:
                self._transition(key, record, CircuitState.CLOSED)
            record.consecutive_failures = 0
            record.half_open_probe_count = 0
            record.last_failure_time = None
        logger.info("Circuit breaker manually reset", key=key)

    def snapshot(self, key: str) -> BreakerSnapshot:
        """Read-only view of a key's record (state as of the last evaluation)."""
        record = self._get_record(key)
        with record.lock:
            return BreakerSnapshot.of(key, record)

    def snapshots(self) -> list[BreakerSnapshot]:
        """Read-only views of every known key."""
        with self._registry_lock:
            items = list(self._records.items())
        views = []
        for key, record in items:
            with record.lock:
                views.append(BreakerSnapshot.of(key, record))
        return views

    def is_available(self, key: str) -> bool:
        """
        Whether a call for ``key`` would currently be admitted.

        Evaluates pending time-based transitions without applying them.
        """
        record = self._get_record(key)
        now = self._clock()
        with record.lock:
            policy = record.policy
            if record.state == CircuitState.CLOSED:
                return True
            if record.state == CircuitState.OPEN:
                return self._reset_timeout_elapsed(record, now)
            return record.half_open_probe_count < policy.half_open_max_probes

    # ------------------------------------------------------------------
    # Transition functions (called with record.lock held)
    # ------------------------------------------------------------------

    @staticmethod
    def _reset_timeout_elapsed(record: CircuitBreakerRecord, now: float) -> bool:
        if record.last_failure_time is None:
            return True
        return now - record.last_failure_time >= record.policy.reset_timeout

    @staticmethod
    def _failures_forgotten(record: CircuitBreakerRecord, now: float) -> bool:
        return (
            record.last_failure_time is not None
            and now - record.last_failure_time >= record.policy.monitoring_period
        )

    def _transition(
        self, key: str, record: CircuitBreakerRecord, to_state: CircuitState
    ) -> None:
        from_state = record.state
        record.state = to_state
        circuit_transitions_total.labels(
            from_state=from_state.value, to_state=to_state.value
        ).inc()
        log = logger.warning if to_state == CircuitState.OPEN else logger.info
        log(
            "Circuit breaker state change",
            key=key,
            from_state=from_state,
            to_state=to_state,
            consecutive_failures=record.consecutive_failures,
        )

    def _evaluate(self, key: str, record: CircuitBreakerRecord, now: float) -> None:
        """Apply time-based transitions that are due."""
        if record.state == CircuitState.OPEN:
            if self._reset_timeout_elapsed(record, now):
                self._transition(key, record, CircuitState.HALF_OPEN)
                record.half_open_probe_count = 0
        elif record.state == CircuitState.CLOSED:
            if record.consecutive_failures and self._failures_forgotten(record, now):
                record.consecutive_failures = 0

    def _admit(self, key: str, record: CircuitBreakerRecord) -> bool:
        """
        Admit or reject a call.

        Returns:
            True if the admitted call is a HALF_OPEN probe

        Raises:
            CircuitOpenError: Key is OPEN or the probe budget is spent
        """
        now = self._clock()
        with record.lock:
            self._evaluate(key, record, now)

            if record.state == CircuitState.OPEN:
                retry_in = None
                if record.last_failure_time is not None:
                    retry_in = max(
                        0.0,
                        record.policy.reset_timeout - (now - record.last_failure_time),
                    )
                circuit_rejections_total.inc()
                raise CircuitOpenError(key, retry_in=retry_in)

            if record.state == CircuitState.HALF_OPEN:
                if record.half_open_probe_count >= record.policy.half_open_max_probes:
                    circuit_rejections_total.inc()
                    raise CircuitOpenError(key)
                record.half_open_probe_count += 1
                return True

            return False

    def _release_probe(self, record: CircuitBreakerRecord, is_probe: bool) -> None:
        """Give back a probe slot for a call that ended without a verdict."""
        if not is_probe:
            return
        with record.lock:
            if record.state == CircuitState.HALF_OPEN and record.half_open_probe_count > 0:
                record.half_open_probe_count -= 1

    def _record_success(
        self, key: str, record: CircuitBreakerRecord, is_probe: bool
    ) -> None:
        now = self._clock()
        with record.lock:
            record.last_success_time = now
            if record.state == CircuitState.HALF_OPEN and is_probe:
                record.consecutive_failures = 0
                record.half_open_probe_count = 0
                self._transition(key, record, CircuitState.CLOSED)
            elif record.state == CircuitState.CLOSED:
                record.consecutive_failures = 0

    def _record_failure(
        self,
        key: str,
        record: CircuitBreakerRecord,
        exc: BaseException,
        is_probe: bool,
    ) -> None:
        now = self._clock()
        tripped = False
        with record.lock:
            if record.state == CircuitState.CLOSED and self._failures_forgotten(record, now):
                record.consecutive_failures = 0

            record.consecutive_failures += 1
            record.last_failure_time = now

            if record.state == CircuitState.HALF_OPEN and is_probe:
                self._transition(key, record, CircuitState.OPEN)
                tripped = True
            elif (
                record.state == CircuitState.CLOSED
                and record.consecutive_failures >= record.policy.failure_threshold
            ):
                self._transition(key, record, CircuitState.OPEN)
                tripped = True

            failures = record.consecutive_failures
            threshold = record.policy.failure_threshold

        if tripped and self.reporter is not None:
            self.reporter.report(
                f"Circuit breaker opened for '{key}'",
                ErrorKind.CIRCUIT_OPEN,
                {
                    "key": key,
                    "failure_threshold": threshold,
                    "last_error": type(exc).__name__,
                },
                handled=True,
            )
        logger.debug(
            "Circuit breaker recorded failure",
            key=key,
            consecutive_failures=failures,
            failure_threshold=threshold,
            error_type=type(exc).__name__,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def call(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Invoke ``operation`` through the breaker for ``key``.

        Args:
            key: Endpoint key (e.g. "GET /services")
            operation: Zero-argument async callable

        Returns:
            The operation's result

        Raises:
            CircuitOpenError: Call rejected without invoking the operation
            Exception: Whatever the operation raised (after recording it)
        """
        record = self._get_record(key)
        is_probe = self._admit(key, record)

        try:
            result = await operation()
        except Exception as exc:
            if self._counts_as_failure(exc):
                self._record_failure(key, record, exc, is_probe)
            else:
                self._release_probe(record, is_probe)
            raise
        except BaseException:
            # Cancelled before a verdict; do not strand the probe slot
            self._release_probe(record, is_probe)
            raise

        self._record_success(key, record, is_probe)
        return result

    def wrap(
        self, key: str, operation: Callable[[], Awaitable[T]]
    ) -> Callable[[], Awaitable[T]]:
        """
        Return ``operation`` guarded by the breaker for ``key``.

        The returned callable can be handed to the retry executor; every
        attempt is admitted (or rejected) separately.
        """

        @functools.wraps(operation)
        async def guarded() -> T:
            return await self.call(key, operation)

        return guarded
