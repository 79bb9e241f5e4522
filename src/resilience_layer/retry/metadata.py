"""
Retry result tracking.

This module defines the RetryResult dataclass returned by the retry
executor for every run, successful or not.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from resilience_layer.errors.exceptions import OperationError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    """
    Outcome of a retried operation.

    Attributes:
        success: True if some attempt returned a value
        value: Value returned by the successful attempt (None on failure)
        error: Last normalized error (None on success)
        attempts: Number of attempts actually made (>= 1)
        total_elapsed: Seconds from first attempt to final outcome, backoff included
    """

    success: bool
    attempts: int
    total_elapsed: float
    value: Optional[T] = None
    error: Optional[OperationError] = None

    def __post_init__(self) -> None:
        """Validate result invariants."""
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")

        if self.total_elapsed < 0:
            raise ValueError("total_elapsed must be >= 0")

        if not self.success and self.error is None:
            raise ValueError("failed result must carry an error")

    def unwrap(self) -> T:
        """Return the value, or raise the last error."""
        if self.success:
            return self.value  # type: ignore[return-value]
        assert self.error is not None
        raise self.error

    def to_log_fields(self) -> dict[str, Any]:
        """Flatten into structured log fields."""
        return {
            "success": self.success,
            "attempts": self.attempts,
            "total_elapsed_ms": int(self.total_elapsed * 1000),
            "error_kind": self.error.kind.value if self.error else None,
        }
