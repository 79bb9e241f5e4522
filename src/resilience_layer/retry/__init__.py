"""
Retry executor with exponential backoff and jitter.

Main Components:
    - RetryPolicy: Immutable retry configuration (budget, backoff, predicate)
    - compute_delay: Pure backoff delay function with injectable RNG
    - RetryExecutor: Runs an async operation with retries
    - RetryResult: Outcome of a run (value or last error, attempts, elapsed)

Usage:
    >>> from resilience_layer.retry import RetryExecutor, RetryPolicy
    >>> executor = RetryExecutor(RetryPolicy(max_retries=2, base_delay=0.1))
    >>> result = await executor.run(lambda: client.get("/services"))
"""

from resilience_layer.retry.backoff import compute_delay
from resilience_layer.retry.executor import RetryExecutor
from resilience_layer.retry.metadata import RetryResult
from resilience_layer.retry.policy import RetryPolicy

__all__ = [
    "RetryExecutor",
    "RetryPolicy",
    "RetryResult",
    "compute_delay",
]
