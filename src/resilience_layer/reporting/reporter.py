"""
Error reporter with deduplication, throttling and subscriber fan-out.

report() flow:
1. Fingerprint the error (kind, message, raise site, context)
2. Throttle check: over a cap, fold into the existing record silently
3. Known fingerprint: bump count, move to front, notify
4. New fingerprint: classify, insert at front, evict oldest, notify

Listeners run synchronously after the lock is released. A failing listener
is logged and skipped; report() itself never raises.
"""

import threading
import time
import uuid
from typing import Any, Callable, Mapping, Optional, Union

import structlog

from resilience_layer.errors.classification import classify_exception
from resilience_layer.errors.exceptions import OperationError
from resilience_layer.models.enums import ErrorKind, Severity
from resilience_layer.models.timing import Clock
from resilience_layer.monitoring.metrics import errors_reported_total, errors_throttled_total
from resilience_layer.reporting.classifier import classify_report
from resilience_layer.reporting.fingerprint import (
    compute_fingerprint,
    format_stack,
    raise_site,
)
from resilience_layer.reporting.models import (
    THROTTLED_REPORT_ID,
    UNRECORDED_REPORT_ID,
    ErrorStats,
    ReportedError,
    ThrottleStats,
)
from resilience_layer.reporting.throttle import ThrottleConfig, ThrottleWindow

Listener = Callable[[ReportedError], None]

logger = structlog.get_logger(__name__)

DEFAULT_MAX_AGE = 24 * 60 * 60.0

_LOG_METHOD = {
    Severity.LOW: "info",
    Severity.MEDIUM: "warning",
    Severity.HIGH: "error",
    Severity.CRITICAL: "critical",
}


class Subscription:
    """
    Handle returned by ErrorReporter.subscribe.

    Calling the handle is the same as calling unsubscribe(). Unsubscribing
    twice is a no-op.
    """

    def __init__(self, reporter: "ErrorReporter", listener: Listener):
        self._reporter = reporter
        self.listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._reporter._remove_subscription(self)

    def __call__(self) -> None:
        self.unsubscribe()


class ErrorReporter:
    """
    Collects, deduplicates and throttles error reports.

    Records are kept most-recent-first, capped at ``max_errors``. The ordered
    list and the fingerprint map are only modified together, under one lock.

    Attributes:
        max_errors: Maximum number of stored records
    """

    def __init__(
        self,
        max_errors: int = 50,
        throttle_config: Optional[ThrottleConfig] = None,
        *,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize error reporter.

        Args:
            max_errors: Record cap (oldest evicted first)
            throttle_config: Throttling limits (defaults if None)
            clock: Clock in seconds (default time.time)
        """
        if max_errors < 1:
            raise ValueError("max_errors must be >= 1")

        self.max_errors = max_errors
        self._clock = clock or time.time
        self._throttle_config = throttle_config or ThrottleConfig()
        self._window = ThrottleWindow(window_start=self._clock())
        self._errors: list[ReportedError] = []
        self._by_fingerprint: dict[str, ReportedError] = {}
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def report(
        self,
        error: Union[BaseException, str],
        kind: Optional[ErrorKind] = None,
        context: Optional[Mapping[str, Any]] = None,
        handled: bool = False,
    ) -> str:
        """
        Report an error.

        Args:
            error: Exception or plain message
            kind: Error kind (taken from the error itself if None)
            context: Extra data stored with the record and used in the fingerprint
            handled: Whether the caller already dealt with the error

        Returns:
            Id of the new or consolidated record, THROTTLED_REPORT_ID when
            dropped by throttling, or UNRECORDED_REPORT_ID if the reporter
            itself failed
        """
        try:
            return self._report(error, kind, context, handled)
        except Exception:
            logger.exception("Error reporter failed to record error")
            return UNRECORDED_REPORT_ID

    def _report(
        self,
        error: Union[BaseException, str],
        kind: Optional[ErrorKind],
        context: Optional[Mapping[str, Any]],
        handled: bool,
    ) -> str:
        status_code: Optional[int] = None
        stack: Optional[str] = None
        site: Optional[str] = None

        if isinstance(error, str):
            message = error
            kind = kind or ErrorKind.INTERNAL
        elif isinstance(error, OperationError):
            message = error.message
            kind = kind or error.kind
            status_code = error.status_code
            stack = format_stack(error)
            site = raise_site(error)
        else:
            tagged = classify_exception(error)
            message = str(error) or type(error).__name__
            kind = kind or tagged.kind
            status_code = tagged.status_code
            stack = format_stack(error)
            site = raise_site(error)

        ctx = dict(context or {})
        fingerprint = compute_fingerprint(kind, message, site, ctx)
        now = self._clock()

        with self._lock:
            config = self._throttle_config
            self._window.roll(now, config)
            existing = self._by_fingerprint.get(fingerprint)

            if self._window.is_throttled(fingerprint, config):
                if existing is None:
                    record_id = THROTTLED_REPORT_ID
                else:
                    self._replace_locked(self._bump(existing, now), move_to_front=False)
                    record_id = existing.id
                throttled = True
                record = None
            else:
                self._window.record(fingerprint)
                throttled = False
                if existing is not None:
                    record = self._bump(existing, now)
                    self._replace_locked(record, move_to_front=True)
                else:
                    record = self._new_record(
                        fingerprint, message, kind, ctx, stack, handled, status_code, now
                    )
                    self._insert_locked(record)
                record_id = record.id
            subscriptions = list(self._subscriptions)

        if throttled:
            errors_throttled_total.inc()
            logger.debug(
                "Error report throttled",
                fingerprint=fingerprint,
                error_kind=kind,
                record_id=record_id,
            )
            return record_id

        assert record is not None
        errors_reported_total.labels(
            category=record.category.value,
            severity=record.severity.value,
        ).inc()
        self._log_record(record)
        self._notify(subscriptions, record)
        return record_id

    def _new_record(
        self,
        fingerprint: str,
        message: str,
        kind: ErrorKind,
        context: dict[str, Any],
        stack: Optional[str],
        handled: bool,
        status_code: Optional[int],
        now: float,
    ) -> ReportedError:
        classification = classify_report(kind, message)
        return ReportedError(
            id=f"err_{uuid.uuid4().hex[:12]}",
            fingerprint=fingerprint,
            message=message,
            kind=kind,
            first_seen=now,
            last_seen=now,
            severity=classification.severity,
            category=classification.category,
            user_message=classification.user_message,
            context=context,
            stack=stack,
            handled=handled,
            status_code=status_code,
        )

    @staticmethod
    def _bump(record: ReportedError, now: float) -> ReportedError:
        return record.model_copy(
            update={
                "occurrence_count": record.occurrence_count + 1,
                "last_seen": max(now, record.last_seen),
            }
        )

    def _insert_locked(self, record: ReportedError) -> None:
        self._errors.insert(0, record)
        self._by_fingerprint[record.fingerprint] = record
        while len(self._errors) > self.max_errors:
            evicted = self._errors.pop()
            del self._by_fingerprint[evicted.fingerprint]

    def _replace_locked(self, record: ReportedError, move_to_front: bool) -> None:
        index = next(
            i for i, e in enumerate(self._errors) if e.fingerprint == record.fingerprint
        )
        if move_to_front:
            del self._errors[index]
            self._errors.insert(0, record)
        else:
            self._errors[index] = record
        self._by_fingerprint[record.fingerprint] = record

    def _log_record(self, record: ReportedError) -> None:
        log = getattr(logger, _LOG_METHOD[record.severity])
        log(
            "Error reported",
            record_id=record.id,
            error_kind=record.kind,
            category=record.category,
            severity=record.severity,
            occurrence_count=record.occurrence_count,
            handled=record.handled,
            error=record.message,
        )

    def _notify(self, subscriptions: list[Subscription], record: ReportedError) -> None:
        for subscription in subscriptions:
            if not subscription.active:
                continue
            try:
                subscription.listener(record)
            except Exception:
                logger.exception("Error listener failed", record_id=record.id)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Subscription:
        """
        Register a listener for new and consolidated reports.

        Returns:
            Subscription handle; call it (or its unsubscribe()) to stop
        """
        subscription = Subscription(self, listener)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_errors(self) -> list[ReportedError]:
        """Stored records, most recent first."""
        with self._lock:
            return list(self._errors)

    def get_errors_by_kind(self, kind: ErrorKind) -> list[ReportedError]:
        with self._lock:
            return [e for e in self._errors if e.kind == kind]

    def get_consolidated_errors(self) -> list[ReportedError]:
        """Records seen more than once."""
        with self._lock:
            return [e for e in self._errors if e.occurrence_count > 1]

    def get_error_stats(self) -> ErrorStats:
        with self._lock:
            by_kind: dict[str, int] = {}
            by_category: dict[str, int] = {}
            by_severity: dict[str, int] = {}
            for record in self._errors:
                count = record.occurrence_count
                by_kind[record.kind.value] = by_kind.get(record.kind.value, 0) + count
                by_category[record.category.value] = (
                    by_category.get(record.category.value, 0) + count
                )
                by_severity[record.severity.value] = (
                    by_severity.get(record.severity.value, 0) + count
                )
            throttle = ThrottleStats(
                total_in_window=self._window.total_count,
                window_start=self._window.window_start,
                is_throttling=(
                    self._window.total_count >= self._throttle_config.max_errors_per_window
                ),
            )
            return ErrorStats(
                total_errors=sum(by_kind.values()),
                unique_errors=len(self._errors),
                by_kind=by_kind,
                by_category=by_category,
                by_severity=by_severity,
                throttle=throttle,
            )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def clear_errors(self) -> None:
        with self._lock:
            self._errors.clear()
            self._by_fingerprint.clear()
        logger.info("Error records cleared")

    def clear_old_errors(self, max_age: float = DEFAULT_MAX_AGE) -> int:
        """
        Drop records not seen for ``max_age`` seconds.

        Returns:
            Number of records removed
        """
        cutoff = self._clock() - max_age
        with self._lock:
            kept = [e for e in self._errors if e.last_seen >= cutoff]
            removed = len(self._errors) - len(kept)
            self._errors = kept
            self._by_fingerprint = {e.fingerprint: e for e in kept}
        if removed:
            logger.info("Old error records cleared", removed=removed, max_age_seconds=max_age)
        return removed

    def configure_throttling(self, **changes: Any) -> ThrottleConfig:
        """
        Change throttling limits (any ThrottleConfig field).

        Raises:
            ValueError: Invalid limit
            TypeError: Unknown field
        """
        with self._lock:
            self._throttle_config = self._throttle_config.with_overrides(**changes)
            config = self._throttle_config
        logger.info("Error throttling reconfigured", **changes)
        return config

    def get_throttle_config(self) -> ThrottleConfig:
        return self._throttle_config

    def reset_throttle_state(self) -> None:
        """Start a fresh throttling window now."""
        with self._lock:
            self._window = ThrottleWindow(window_start=self._clock())
