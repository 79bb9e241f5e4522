"""
Unit tests for the resilience layer.

Test individual components in isolation:
- Error classification and retry predicate
- Backoff computation and retry executor
- Circuit breaker state machine
- Response cache (plain, stale-while-revalidate, coalescing, eviction)
- Error reporter (fingerprints, throttling, subscribers) and notifications
- Settings and logging configuration
"""
