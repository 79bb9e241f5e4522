"""
Circuit breaker policy and per-key state records.

A CircuitBreakerRecord is only ever mutated by the CircuitBreaker while
holding that key's lock. Code outside the breaker reads BreakerSnapshot
copies.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional

from resilience_layer.models.enums import CircuitState


@dataclass(frozen=True)
class CircuitBreakerPolicy:
    """
    Failure budget and timing for one breaker key.

    Attributes:
        failure_threshold: Consecutive failures that trip CLOSED -> OPEN
        reset_timeout: Seconds after the last failure before OPEN -> HALF_OPEN
        monitoring_period: Seconds after which CLOSED-state failures are forgotten
        half_open_max_probes: Probe calls admitted per HALF_OPEN episode
    """

    failure_threshold: int = 5
    reset_timeout: float = 60.0
    monitoring_period: float = 300.0
    half_open_max_probes: int = 1

    def __post_init__(self) -> None:
        """Validate policy invariants."""
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")

        if self.half_open_max_probes < 1:
            raise ValueError("half_open_max_probes must be >= 1")

        if self.reset_timeout < 0 or self.monitoring_period < 0:
            raise ValueError("timeouts must be >= 0")


@dataclass
class CircuitBreakerRecord:
    """Mutable breaker state for a single key."""

    policy: CircuitBreakerPolicy
    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    last_failure_time: Optional[float] = None
    last_success_time: Optional[float] = None
    half_open_probe_count: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time, read-only view of a breaker record."""

    key: str
    state: CircuitState
    consecutive_failures: int
    last_failure_time: Optional[float]
    last_success_time: Optional[float]
    half_open_probe_count: int
    policy: CircuitBreakerPolicy

    @classmethod
    def of(cls, key: str, record: CircuitBreakerRecord) -> "BreakerSnapshot":
        return cls(
            key=key,
            state=record.state,
            consecutive_failures=record.consecutive_failures,
            last_failure_time=record.last_failure_time,
            last_success_time=record.last_success_time,
            half_open_probe_count=record.half_open_probe_count,
            policy=record.policy,
        )
