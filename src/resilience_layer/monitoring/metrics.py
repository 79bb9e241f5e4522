"""Custom Prometheus metrics for the resilience layer.

These metrics are registered on the default registry and can be exposed by
the host application. Alert rules should be configured for:
- circuit_transitions_total (breakers tripping to open)
- retry_attempts_total (high retry rate indicates an unstable dependency)
- errors_throttled_total (error floods being absorbed)
"""

from prometheus_client import Counter

# === Retry Metrics ===

retry_attempts_total = Counter(
    "resilience_retry_attempts_total",
    "Operation attempts made by the retry executor, by outcome",
    ["outcome"],
)
"""
Attempts counter.

Labels:
- outcome: success, retried (failed and will retry), gave_up (failed, terminal)
"""

# === Circuit Breaker Metrics ===

circuit_transitions_total = Counter(
    "resilience_circuit_transitions_total",
    "Circuit breaker state transitions",
    ["from_state", "to_state"],
)
"""
State transition counter.

Labels:
- from_state / to_state: closed, open, half_open

Alert thresholds:
- WARN: any closed -> open transition
"""

circuit_rejections_total = Counter(
    "resilience_circuit_rejections_total",
    "Calls rejected without invoking the operation (circuit open or probe budget spent)",
)

# === Cache Metrics ===

cache_lookups_total = Counter(
    "resilience_cache_lookups_total",
    "Response cache lookups by mode and result",
    ["mode", "result"],
)
"""
Lookup counter.

Labels:
- mode: plain, swr
- result: fresh, stale, miss, coalesced, stale_fallback
"""

cache_evictions_total = Counter(
    "resilience_cache_evictions_total",
    "Response cache entries removed by reason",
    ["reason"],
)
"""
Eviction counter.

Labels:
- reason: capacity (oldest-first), expired (sweep or read), invalidated
"""

# === Error Reporting Metrics ===

errors_reported_total = Counter(
    "resilience_errors_reported_total",
    "Errors accepted by the reporter (new or consolidated)",
    ["category", "severity"],
)

errors_throttled_total = Counter(
    "resilience_errors_throttled_total",
    "Errors absorbed by throttling without notifying subscribers",
)
