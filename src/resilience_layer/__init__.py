"""
Client-side resilience and caching layer.

Mediates outbound network calls with:
- Retry with exponential backoff and jitter
- Per-endpoint circuit breaking
- TTL response cache with stale-while-revalidate and request coalescing
- Error reporting with deduplication, throttling and categorization

Architecture: explicitly constructed components wired by
``build_resilience_layer(settings)``; no module-level service singletons.
"""

__version__ = "0.1.0"
