"""Monitoring and metrics instrumentation for the resilience layer.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from resilience_layer.monitoring.metrics import (
    cache_evictions_total,
    cache_lookups_total,
    circuit_rejections_total,
    circuit_transitions_total,
    errors_reported_total,
    errors_throttled_total,
    retry_attempts_total,
)

__all__ = [
    "retry_attempts_total",
    "circuit_transitions_total",
    "circuit_rejections_total",
    "cache_lookups_total",
    "cache_evictions_total",
    "errors_reported_total",
    "errors_throttled_total",
]
