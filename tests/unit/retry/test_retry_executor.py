"""
Unit tests for RetryExecutor.

Tests the attempt loop, retry predicate, hooks, reporting and batch runs
on fake time.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from resilience_layer.errors import (
    AuthenticationError,
    CircuitOpenError,
    NetworkError,
    NotFoundError,
    OperationError,
    ServerError,
)
from resilience_layer.models.enums import ErrorKind
from resilience_layer.retry.executor import RetryExecutor
from resilience_layer.retry.metadata import RetryResult
from resilience_layer.retry.policy import RetryPolicy


# ============================================================================
# run()
# ============================================================================


@pytest.mark.asyncio
async def test_success_first_attempt(executor, recording_sleep):
    """Test a successful operation runs once without sleeping."""
    operation = AsyncMock(return_value={"id": 1})

    result = await executor.run(operation)

    assert result.success is True
    assert result.value == {"id": 1}
    assert result.attempts == 1
    assert result.error is None
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_two_failures_then_success_elapsed(recording_sleep, fake_clock):
    """Test 2 transient failures then success: 3 attempts, ~300ms of backoff."""
    executor = RetryExecutor(
        RetryPolicy(max_retries=3, base_delay=0.1, exponential=True, jitter_enabled=False),
        sleep_func=recording_sleep,
        clock=fake_clock,
    )
    operation = AsyncMock(
        side_effect=[NetworkError("Connection refused"), NetworkError("Connection refused"), "ok"]
    )

    result = await executor.run(operation)

    assert result.success is True
    assert result.value == "ok"
    assert result.attempts == 3
    assert recording_sleep.delays == pytest.approx([0.1, 0.2])
    assert result.total_elapsed == pytest.approx(0.3)


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(executor, recording_sleep):
    """Test max_retries + 1 attempts then failure with the last error."""
    errors = [ServerError(f"down {i}", status_code=503) for i in range(4)]
    operation = AsyncMock(side_effect=errors)

    result = await executor.run(operation)

    assert result.success is False
    assert result.attempts == 4
    assert result.error is errors[-1]
    assert len(recording_sleep.delays) == 3


@pytest.mark.asyncio
async def test_non_retryable_error_stops_immediately(executor, recording_sleep):
    """Test a 4xx failure is surfaced after one attempt."""
    operation = AsyncMock(side_effect=NotFoundError("gone", status_code=404))

    result = await executor.run(operation)

    assert result.success is False
    assert result.attempts == 1
    assert result.error.kind == ErrorKind.NOT_FOUND
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_circuit_open_never_retried_even_with_permissive_predicate(recording_sleep):
    """Test breaker rejections bypass a predicate that retries everything."""
    executor = RetryExecutor(
        RetryPolicy(max_retries=5, jitter_enabled=False, retry_predicate=lambda e: True),
        sleep_func=recording_sleep,
    )
    operation = AsyncMock(side_effect=CircuitOpenError("GET /services"))

    result = await executor.run(operation)

    assert result.attempts == 1
    assert result.error.kind == ErrorKind.CIRCUIT_OPEN
    operation.assert_awaited_once()


@pytest.mark.asyncio
async def test_foreign_exceptions_are_classified(executor):
    """Test non-OperationError failures are normalized once."""
    operation = AsyncMock(side_effect=ConnectionResetError("reset by peer"))

    result = await executor.run(operation, RetryPolicy(max_retries=0))

    assert isinstance(result.error, OperationError)
    assert result.error.kind == ErrorKind.NETWORK
    assert isinstance(result.error.cause, ConnectionResetError)


@pytest.mark.asyncio
async def test_custom_predicate_and_on_retry_hook(executor):
    """Test a per-call predicate and the on_retry hook arguments."""
    hook = Mock()
    policy = RetryPolicy(
        max_retries=2,
        base_delay=0.0,
        jitter_enabled=False,
        retry_predicate=lambda e: e.kind == ErrorKind.AUTHENTICATION,
        on_retry=hook,
    )
    first = AuthenticationError("token expired", status_code=401)
    operation = AsyncMock(side_effect=[first, "ok"])

    result = await executor.run(operation, policy)

    assert result.success is True
    hook.assert_called_once_with(first, 1)


@pytest.mark.asyncio
async def test_cancellation_propagates(executor):
    """Test cancellation of the operation is never swallowed."""
    operation = AsyncMock(side_effect=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await executor.run(operation)


# ============================================================================
# run_or_raise() / wrap()
# ============================================================================


@pytest.mark.asyncio
async def test_run_or_raise_returns_value(executor):
    assert await executor.run_or_raise(AsyncMock(return_value=5)) == 5


@pytest.mark.asyncio
async def test_run_or_raise_reports_and_raises_last_error(
    recording_sleep, fake_clock, mock_reporter
):
    """Test terminal failure is reported with context and re-raised as-is."""
    executor = RetryExecutor(
        RetryPolicy(max_retries=1, base_delay=0.1, jitter_enabled=False),
        reporter=mock_reporter,
        sleep_func=recording_sleep,
        clock=fake_clock,
    )
    last = ServerError("still down", status_code=500)
    operation = AsyncMock(side_effect=[ServerError("down", status_code=500), last])

    with pytest.raises(ServerError) as exc_info:
        await executor.run_or_raise(operation, context="GET /services")

    assert exc_info.value is last
    mock_reporter.report.assert_called_once_with(
        last, ErrorKind.SERVER, {"context": "GET /services", "max_retries": 1}
    )


@pytest.mark.asyncio
async def test_wrap_retries_with_arguments(executor):
    """Test wrapped functions receive their arguments on every attempt."""
    calls = []

    async def list_services(page: int, size: int = 10):
        calls.append((page, size))
        if len(calls) < 2:
            raise NetworkError("Connection reset")
        return [f"service-{page}"]

    wrapped = executor.wrap(list_services)

    assert await wrapped(2, size=5) == ["service-2"]
    assert calls == [(2, 5), (2, 5)]
    assert wrapped.__name__ == "list_services"


# ============================================================================
# run_batch()
# ============================================================================


@pytest.mark.asyncio
async def test_run_batch_results_in_input_order(executor):
    """Test each operation gets its own retry loop and result."""
    ok = AsyncMock(return_value="a")
    flaky = AsyncMock(side_effect=[NetworkError("blip"), "b"])
    broken = AsyncMock(side_effect=NotFoundError("gone", status_code=404))

    results = await executor.run_batch([ok, flaky, broken])

    assert [r.success for r in results] == [True, True, False]
    assert results[1].attempts == 2
    assert results[2].error.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_run_batch_hook_failure_becomes_result(executor):
    """Test an exception raised by a hook is captured per operation."""
    policy = RetryPolicy(
        max_retries=1,
        jitter_enabled=False,
        on_retry=Mock(side_effect=RuntimeError("hook broke")),
    )
    operation = AsyncMock(side_effect=NetworkError("blip"))

    results = await executor.run_batch([operation], policy)

    assert results[0].success is False
    assert results[0].error.message == "hook broke"


# ============================================================================
# RetryResult
# ============================================================================


def test_retry_result_unwrap():
    """Test unwrap returns the value or raises the stored error."""
    error = ServerError("down", status_code=503)

    assert RetryResult(success=True, attempts=1, total_elapsed=0.0, value=3).unwrap() == 3
    with pytest.raises(ServerError):
        RetryResult(success=False, attempts=2, total_elapsed=0.1, error=error).unwrap()


def test_retry_result_validation():
    with pytest.raises(ValueError):
        RetryResult(success=True, attempts=0, total_elapsed=0.0)
    with pytest.raises(ValueError):
        RetryResult(success=False, attempts=1, total_elapsed=0.0)


def test_retry_result_log_fields():
    error = ServerError("down", status_code=503)
    result = RetryResult(success=False, attempts=3, total_elapsed=0.25, error=error)

    assert result.to_log_fields() == {
        "success": False,
        "attempts": 3,
        "total_elapsed_ms": 250,
        "error_kind": "server",
    }
