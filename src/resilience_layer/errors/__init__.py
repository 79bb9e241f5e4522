"""
Operation error taxonomy and boundary classification.

Components:
- exceptions: OperationError and its kind-pinned subclasses
- classification: status/exception mapping and the default retry predicate
"""

from resilience_layer.errors.classification import (
    RETRYABLE_STATUS_CODES,
    classify_exception,
    error_from_status,
    is_retryable,
)
from resilience_layer.errors.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CircuitOpenError,
    ClientError,
    ConflictError,
    NetworkError,
    NotFoundError,
    OperationError,
    OperationTimeoutError,
    RateLimitedError,
    ServerError,
    ValidationFailedError,
)

__all__ = [
    "OperationError",
    "NetworkError",
    "OperationTimeoutError",
    "ServerError",
    "RateLimitedError",
    "ClientError",
    "ValidationFailedError",
    "NotFoundError",
    "ConflictError",
    "AuthenticationError",
    "AuthorizationError",
    "CircuitOpenError",
    "RETRYABLE_STATUS_CODES",
    "classify_exception",
    "error_from_status",
    "is_retryable",
]
