"""
Endpoint keys for circuit breaker and cache state.

Keys are opaque to the layer; the convention is ``"<METHOD> <path>"``.
Distinct keys are fully independent.
"""

from typing import NewType

EndpointKey = NewType("EndpointKey", str)


def endpoint_key(method: str, path: str) -> EndpointKey:
    """
    Build the conventional key for an endpoint.

    >>> endpoint_key("get", "/services")
    'GET /services'
    """
    return EndpointKey(f"{method.upper()} {path}")
