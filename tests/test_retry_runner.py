import pytest

from dochub.errors import ErrorCode, MaxRetriesExceededError
from dochub.utils.retry import (
    Backoff,
    RetryPolicy,
    backoff_delay_ms,
    backoff_delays,
    with_retry,
)


def test_backoff_delays_linear_and_exponential():
    linear = RetryPolicy(max_retries=3, base_delay_ms=100, backoff=Backoff.LINEAR)
    exponential = RetryPolicy(max_retries=4, base_delay_ms=50)

    assert backoff_delays(linear) == [100, 200, 300]
    assert backoff_delays(exponential) == [50, 100, 200, 400]
    assert backoff_delay_ms(exponential, 0) == 50


def test_policy_rejects_negative_values():
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=-1)
    with pytest.raises(ValueError):
        RetryPolicy(base_delay_ms=-5)


@pytest.mark.asyncio
async def test_with_retry_succeeds_after_transient_failures(sleep_calls):
    calls: list[int] = []

    async def operation() -> str:
        calls.append(1)
        if len(calls) < 3:
            raise TimeoutError("transient")
        return "ok"

    policy = RetryPolicy(max_retries=3, base_delay_ms=10, backoff=Backoff.LINEAR)
    result = await with_retry(operation, policy)

    assert result == "ok"
    assert len(calls) == 3
    assert sleep_calls == [0.01, 0.02]


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retries", [0, 1, 3])
async def test_with_retry_exhaustion_wraps_last_error(sleep_calls, max_retries):
    calls: list[int] = []
    retried: list[tuple[int, str]] = []

    async def operation() -> None:
        calls.append(1)
        raise ConnectionError(f"connection reset #{len(calls)}")

    policy = RetryPolicy(
        max_retries=max_retries,
        base_delay_ms=100,
        on_retry=lambda attempt, exc: retried.append((attempt, str(exc))),
    )

    with pytest.raises(MaxRetriesExceededError) as excinfo:
        await with_retry(operation, policy, operation_name="load page")

    error = excinfo.value
    assert len(calls) == max_retries + 1
    assert error.code is ErrorCode.MAX_RETRIES_EXCEEDED
    assert error.attempts == max_retries + 1
    assert error.operation == "load page"
    assert isinstance(error.cause, ConnectionError)
    assert str(error.cause) == f"connection reset #{max_retries + 1}"
    assert "connection reset" in str(error)
    assert [attempt for attempt, _ in retried] == list(range(1, max_retries + 1))
    assert sleep_calls == [100 * 2**n / 1000.0 for n in range(max_retries)]


@pytest.mark.asyncio
async def test_with_retry_should_retry_veto_propagates_untouched(sleep_calls):
    calls: list[int] = []

    async def operation() -> None:
        calls.append(1)
        raise KeyError("missing")

    policy = RetryPolicy(max_retries=5, should_retry=lambda exc: False)

    with pytest.raises(KeyError):
        await with_retry(operation, policy)

    assert calls == [1]
    assert sleep_calls == []


@pytest.mark.asyncio
async def test_with_retry_zero_delay_does_not_sleep(sleep_calls):
    async def operation() -> None:
        raise RuntimeError("nope")

    with pytest.raises(MaxRetriesExceededError):
        await with_retry(operation, RetryPolicy(max_retries=2, base_delay_ms=0))

    assert sleep_calls == []


@pytest.mark.asyncio
async def test_with_retry_without_attempts_is_a_runtime_error(sleep_calls):
    policy = RetryPolicy(max_retries=0)
    object.__setattr__(policy, "max_retries", -1)

    async def operation() -> None:
        raise AssertionError("never called")

    with pytest.raises(RuntimeError, match="Retry loop exited unexpectedly"):
        await with_retry(operation, policy)
