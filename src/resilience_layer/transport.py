"""
httpx boundary for outbound HTTP calls.

http_operation turns one request on a shared httpx.AsyncClient into a
zero-argument operation the retry executor, breaker and cache can run
repeatedly. Transport and status failures leave this module already
classified as OperationError.
"""

from typing import Any, Awaitable, Callable

import httpx
import structlog

from resilience_layer.errors.classification import classify_exception
from resilience_layer.errors.exceptions import OperationError
from resilience_layer.models.enums import ErrorKind
from resilience_layer.models.keys import EndpointKey, endpoint_key

logger = structlog.get_logger(__name__)

__all__ = ["EndpointKey", "decode_response", "endpoint_key", "http_operation"]


def decode_response(response: httpx.Response) -> Any:
    """
    Decode a successful response body.

    Empty bodies decode to None. A top-level ``{"data": ...}`` envelope is
    unwrapped.

    Raises:
        OperationError: Body is not valid JSON (kind INTERNAL)
    """
    if response.status_code == 204 or not response.content:
        return None
    try:
        body = response.json()
    except ValueError as exc:
        raise OperationError(
            "Invalid JSON in response body",
            kind=ErrorKind.INTERNAL,
            status_code=response.status_code,
            cause=exc,
            details={"url": str(response.request.url)},
        ) from exc
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


def http_operation(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any,
) -> Callable[[], Awaitable[Any]]:
    """
    Build a re-runnable operation for one HTTP request.

    Args:
        client: Shared async client (its base_url, timeout and limits apply)
        method: HTTP method
        url: URL or path relative to the client's base_url
        **kwargs: Passed to httpx.AsyncClient.request (params, json, headers...)

    Returns:
        Zero-argument async callable returning the decoded body

    Example:
        >>> op = http_operation(client, "GET", "/services", params={"page": 1})
        >>> services = await layer.client.get(endpoint_key("GET", "/services"), op)
    """

    async def operation() -> Any:
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            error = classify_exception(exc)
            logger.debug(
                "HTTP request failed",
                method=method,
                url=url,
                error_kind=error.kind,
                status_code=error.status_code,
            )
            raise error from exc
        return decode_response(response)

    operation.__qualname__ = f"http_operation[{method.upper()} {url}]"
    return operation
