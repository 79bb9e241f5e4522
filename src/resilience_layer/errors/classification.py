"""
Error classification at the operation boundary.

Maps transport failures (httpx exceptions, stdlib socket/timeout errors,
HTTP status codes) onto the tagged OperationError taxonomy, and provides the
default retry predicate used by the retry executor.
"""

import asyncio
import socket
from typing import Optional

import httpx

from resilience_layer.errors.exceptions import (
    AuthenticationError,
    AuthorizationError,
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
from resilience_layer.models.enums import ErrorKind

# HTTP statuses worth retrying even though some are 4xx
RETRYABLE_STATUS_CODES = frozenset({408, 429, 502, 503, 504})

NEVER_RETRY_KINDS = frozenset(
    {
        ErrorKind.AUTHENTICATION,
        ErrorKind.AUTHORIZATION,
        ErrorKind.VALIDATION,
        ErrorKind.CIRCUIT_OPEN,
    }
)

_STATUS_DEFAULT_MESSAGES = {
    400: "Invalid request data",
    401: "Authentication required",
    403: "Access denied",
    404: "Resource not found",
    408: "Request timeout",
    409: "Resource conflict",
    422: "Validation failed",
    429: "Too many requests",
}


def error_from_status(
    status_code: int,
    message: Optional[str] = None,
    *,
    cause: Optional[BaseException] = None,
    details: Optional[dict] = None,
    retry_after: Optional[float] = None,
) -> OperationError:
    """
    Build the tagged error for an HTTP-like status code.

    Args:
        status_code: Response status (>= 400)
        message: Server-provided message, if any
        cause: Original exception
        details: Extra structured data
        retry_after: Seconds from a Retry-After header (429 only)

    Returns:
        OperationError subclass matching the status family
    """
    if message is None:
        if status_code >= 500:
            message = "Server error"
        else:
            message = _STATUS_DEFAULT_MESSAGES.get(status_code, f"HTTP {status_code} error")

    kwargs = {"status_code": status_code, "cause": cause, "details": details}

    if status_code in (400, 422):
        return ValidationFailedError(message, **kwargs)
    if status_code == 401:
        return AuthenticationError(message, **kwargs)
    if status_code == 403:
        return AuthorizationError(message, **kwargs)
    if status_code == 404:
        return NotFoundError(message, **kwargs)
    if status_code == 408:
        return OperationTimeoutError(message, **kwargs)
    if status_code == 409:
        return ConflictError(message, **kwargs)
    if status_code == 429:
        return RateLimitedError(message, retry_after=retry_after, **kwargs)
    if status_code >= 500:
        return ServerError(message, **kwargs)
    if status_code >= 400:
        return ClientError(message, **kwargs)
    return OperationError(message, **kwargs)


def _response_message(response: httpx.Response) -> Optional[str]:
    """Extract a ``message`` field from a JSON error body, if present."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def classify_exception(exc: BaseException) -> OperationError:
    """
    Normalize any exception raised by an operation into an OperationError.

    OperationErrors pass through unchanged. Everything else is wrapped with
    the original kept as ``cause``.

    Args:
        exc: Exception raised by the underlying operation

    Returns:
        Tagged OperationError
    """
    if isinstance(exc, OperationError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        return error_from_status(
            response.status_code,
            _response_message(response),
            cause=exc,
            details={"url": str(exc.request.url), "method": exc.request.method},
            retry_after=_retry_after(response),
        )

    if isinstance(exc, httpx.TimeoutException):
        return OperationTimeoutError(f"Request timeout: {exc}", cause=exc)

    if isinstance(exc, httpx.TransportError):
        return NetworkError(f"Network error: {exc}", cause=exc)

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return OperationTimeoutError("Operation timeout", cause=exc)

    if isinstance(exc, socket.gaierror):
        return NetworkError(f"DNS resolution failed: {exc}", cause=exc)

    if isinstance(exc, ConnectionError):
        return NetworkError(f"Connection failed: {exc}", cause=exc)

    return OperationError(str(exc) or type(exc).__name__, kind=ErrorKind.INTERNAL, cause=exc)


def is_retryable(error: OperationError) -> bool:
    """
    Default retry predicate.

    - Never retry authentication, authorization, validation or circuit-open
    - Always retry network-layer failures (including timeouts)
    - Retry statuses 408, 429, 502, 503, 504 and any 5xx
    - Do not retry other 4xx

    Args:
        error: Normalized operation error

    Returns:
        True if another attempt may succeed
    """
    if error.kind in NEVER_RETRY_KINDS:
        return False

    if error.kind in (ErrorKind.NETWORK, ErrorKind.TIMEOUT):
        return True

    if error.status_code is not None:
        return error.status_code in RETRYABLE_STATUS_CODES or error.status_code >= 500

    if error.kind in (ErrorKind.SERVER, ErrorKind.RATE_LIMITED):
        return True

    # Untyped failures whose message reports a timeout
    if error.kind == ErrorKind.INTERNAL:
        return "timeout" in error.message.lower()

    return False
