"""
Shared types for the resilience layer.

Exports:
- Enums: ErrorKind, CircuitState, Severity, ErrorCategory
- Keys: EndpointKey, endpoint_key
"""

from resilience_layer.models.enums import (
    CircuitState,
    ErrorCategory,
    ErrorKind,
    Severity,
)
from resilience_layer.models.keys import EndpointKey, endpoint_key

__all__ = [
    "ErrorKind",
    "CircuitState",
    "Severity",
    "ErrorCategory",
    "EndpointKey",
    "endpoint_key",
]
