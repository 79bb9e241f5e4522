"""
Per-endpoint circuit breaker.

Components:
- CircuitBreaker: Registry of per-key CLOSED/OPEN/HALF_OPEN state machines
- CircuitBreakerPolicy: Failure budget and timing
- BreakerSnapshot: Read-only view of a key's state
"""

from resilience_layer.breaker.breaker import CircuitBreaker
from resilience_layer.breaker.state import (
    BreakerSnapshot,
    CircuitBreakerPolicy,
    CircuitBreakerRecord,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerPolicy",
    "CircuitBreakerRecord",
    "BreakerSnapshot",
]
