"""
Retry policy.

Immutable description of how an operation is retried: attempt budget,
backoff shape, jitter and the retry predicate.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional

from resilience_layer.errors.classification import is_retryable
from resilience_layer.errors.exceptions import OperationError

RetryPredicate = Callable[[OperationError], bool]
RetryHook = Callable[[OperationError, int], None]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration, supplied per call or defaulted from settings.

    Attributes:
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        base_delay: Delay unit in seconds
        max_delay: Upper bound for any single delay in seconds
        exponential: base_delay * 2^attempt if True, else base_delay * (attempt + 1)
        jitter_enabled: Perturb each delay by +/- jitter_factor of itself
        jitter_factor: Fraction of the raw delay used as jitter range
        retry_predicate: Decides whether a failure is worth another attempt
        on_retry: Optional hook called with (error, next_attempt_number)
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    exponential: bool = True
    jitter_enabled: bool = True
    jitter_factor: float = 0.1
    retry_predicate: RetryPredicate = field(default=is_retryable, compare=False)
    on_retry: Optional[RetryHook] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        """Validate policy invariants."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")

        if not 0.0 <= self.jitter_factor <= 1.0:
            raise ValueError("jitter_factor must be within [0.0, 1.0]")

    def with_overrides(self, **changes: Any) -> "RetryPolicy":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
