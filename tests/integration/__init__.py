"""
Integration tests for the resilience layer.

Test components together through ResilientClient and the httpx boundary:
- Read path (cache -> breaker -> retry -> transport)
- Terminal failure reporting
- Layer lifecycle (start/aclose)
"""
