"""Retry and backoff helpers for remote calls and whole pipeline runs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from dochub.errors import MaxRetriesExceededError
from dochub.logging import get_logger

T = TypeVar("T")

AsyncFactory = Callable[[], Awaitable[T]]
RetryCallback = Callable[[int, Exception], None]
RetryPredicate = Callable[[Exception], bool]

logger = get_logger(__name__)


class Backoff(str, Enum):
    """Growth of the delay between two attempts."""

    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded retry configuration.

    ``max_retries`` counts the attempts after the first one, so an operation
    runs at most ``max_retries + 1`` times. ``should_retry`` may veto a retry
    for a given error, in which case the error propagates untouched.
    """

    max_retries: int = 3
    base_delay_ms: int = 1000
    backoff: Backoff = Backoff.EXPONENTIAL
    on_retry: RetryCallback | None = None
    should_retry: RetryPredicate | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must not be negative")


def backoff_delay_ms(policy: RetryPolicy, attempt: int) -> int:
    """Return the delay after the failed ``attempt`` (zero based)."""

    if policy.backoff is Backoff.EXPONENTIAL:
        return policy.base_delay_ms * (2**attempt)
    return policy.base_delay_ms * (attempt + 1)


def backoff_delays(policy: RetryPolicy) -> list[int]:
    """Return every delay the policy may sleep, in order."""

    return [backoff_delay_ms(policy, attempt) for attempt in range(policy.max_retries)]


async def with_retry(
    async_fn: AsyncFactory[T],
    policy: RetryPolicy,
    *,
    operation_name: str | None = None,
) -> T:
    """Run ``async_fn`` until it succeeds or the policy is exhausted.

    Attempts are strictly sequential. On exhaustion the last error is raised as
    :class:`MaxRetriesExceededError` naming the operation.
    """

    name = operation_name or getattr(async_fn, "__name__", "operation")
    total_attempts = policy.max_retries + 1
    last_error: Exception | None = None

    for attempt in range(total_attempts):
        try:
            return await async_fn()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            last_error = exc
            if policy.should_retry is not None and not policy.should_retry(exc):
                raise
            if attempt >= policy.max_retries:
                break

            delay_ms = backoff_delay_ms(policy, attempt)
            logger.warning(
                "%s attempt %d/%d failed: %s",
                name,
                attempt + 1,
                total_attempts,
                exc,
                extra={
                    "event": "retry.attempt_failed",
                    "operation": name,
                    "attempt": attempt + 1,
                    "delay_ms": delay_ms,
                },
            )
            if delay_ms > 0:
                await asyncio.sleep(delay_ms / 1000.0)
            if policy.on_retry is not None:
                policy.on_retry(attempt + 1, exc)

    if last_error is None:
        raise RuntimeError("Retry loop exited unexpectedly")
    raise MaxRetriesExceededError(name, total_attempts, last_error) from last_error


__all__ = [
    "Backoff",
    "RetryPolicy",
    "backoff_delay_ms",
    "backoff_delays",
    "with_retry",
]
