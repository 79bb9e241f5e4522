"""
Tagged operation errors for the resilience layer.

Every failure of an outbound operation is normalized once, at the boundary
where it happens, into an OperationError carrying a ``kind`` discriminant
plus structured fields (status code, message, cause). The retry predicate,
circuit breaker and error reporter only ever look at this shape, never at
the transport.
"""

from typing import Any, Optional

from resilience_layer.models.enums import ErrorKind


class OperationError(Exception):
    """
    Base exception for all operation failures.

    Subclasses pin ``kind``; the base class can carry any kind (used for
    INTERNAL failures that fit no family).

    Attributes:
        kind: Error taxonomy discriminant
        message: Human-readable description
        status_code: HTTP-like status, when the failure came from a response
        cause: Original exception, if this error wraps one
        details: Structured data for logging
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[ErrorKind] = None,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.message = message
        self.status_code = status_code
        self.cause = cause
        self.details = details or {}
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (status {self.status_code})"
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"kind={self.kind.value}, "
            f"message={self.message!r}, "
            f"status_code={self.status_code})"
        )


class NetworkError(OperationError):
    """
    Connection refused/reset, DNS failure, or no response at all.

    Always retryable.
    """

    kind = ErrorKind.NETWORK


class OperationTimeoutError(NetworkError):
    """
    The operation's own deadline expired (or the server answered 408).

    Separate from generic network errors for categorization; still retryable.
    """

    kind = ErrorKind.TIMEOUT


class ServerError(OperationError):
    """5xx-equivalent failure. Retryable."""

    kind = ErrorKind.SERVER


class RateLimitedError(OperationError):
    """
    The remote side throttled the request (429).

    Retryable with backoff; benefits most from jitter.
    """

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, *, retry_after: Optional[float] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ClientError(OperationError):
    """4xx failure not covered by a more specific family. Never retried."""

    kind = ErrorKind.CLIENT


class ValidationFailedError(ClientError):
    """Request rejected as invalid (400/422). Never retried."""

    kind = ErrorKind.VALIDATION


class NotFoundError(ClientError):
    """Requested resource does not exist (404). Never retried."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(ClientError):
    """Request conflicts with current resource state (409). Never retried."""

    kind = ErrorKind.CONFLICT


class AuthenticationError(ClientError):
    """
    Credentials missing or expired (401).

    Never retried; callers typically react at the session level.
    """

    kind = ErrorKind.AUTHENTICATION


class AuthorizationError(ClientError):
    """Caller lacks permission (403). Never retried."""

    kind = ErrorKind.AUTHORIZATION


class CircuitOpenError(OperationError):
    """
    Synthetic error raised by the circuit breaker when failing fast.

    Never retried by the retry executor: it is the breaker's job to
    eventually admit a probe.
    """

    kind = ErrorKind.CIRCUIT_OPEN

    def __init__(self, key: str, retry_in: Optional[float] = None):
        message = f"Circuit breaker is open for '{key}' - too many recent failures"
        details: dict[str, Any] = {"key": key}
        if retry_in is not None:
            details["retry_in"] = round(retry_in, 3)
        super().__init__(message, details=details)
        self.key = key
        self.retry_in = retry_in
