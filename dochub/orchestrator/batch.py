"""Wave scheduled batch processing of many documents."""

from __future__ import annotations

import asyncio
from dataclasses import replace
import time
from typing import Awaitable, Callable, Iterable, Sequence, TypeVar

from dochub.core.models import (
    BatchOptions,
    BatchResult,
    FailedItem,
    ProcessedArticle,
)
from dochub.logging import get_logger, log_event
from dochub.utils.retry import RetryPolicy, with_retry

T = TypeVar("T")

Pipeline = Callable[[str], Awaitable[ProcessedArticle]]

logger = get_logger(__name__)


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive chunks of ``size`` (last may be shorter)."""

    if size < 1:
        raise ValueError("size must be >= 1")
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


class BatchOrchestrator:
    """Run a pipeline for many ids, ``concurrency`` at a time.

    Ids are processed in waves: every run of a chunk has to finish before the
    next chunk starts. One slow document therefore holds back the following
    chunk.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._retry_policy = retry_policy

    async def _run(self, article_id: str) -> ProcessedArticle:
        policy = self._retry_policy
        if policy is None:
            return await self._pipeline(article_id)

        user_callback = policy.on_retry

        def _on_retry(attempt: int, error: Exception) -> None:
            logger.warning(
                "Retrying article %s (attempt %d): %s",
                article_id,
                attempt,
                error,
                extra={
                    "event": "batch.item_retry",
                    "article_id": article_id,
                    "attempt": attempt,
                },
            )
            if user_callback is not None:
                user_callback(attempt, error)

        return await with_retry(
            lambda: self._pipeline(article_id),
            replace(policy, on_retry=_on_retry),
            operation_name=f"process article {article_id}",
        )

    async def process_many(
        self,
        ids: Iterable[str],
        options: BatchOptions | None = None,
    ) -> BatchResult:
        options = options or BatchOptions()
        items = list(ids)
        total = len(items)
        result = BatchResult()
        if not items:
            return result

        started = time.perf_counter()
        completed = 0

        async def _process(article_id: str) -> FailedItem | None:
            nonlocal completed
            try:
                article = await self._run(article_id)
            except Exception as exc:
                failure = FailedItem(id=article_id, error=exc)
                result.failed.append(failure)
                completed += 1
                logger.warning(
                    "Article %s failed: %s",
                    article_id,
                    exc,
                    extra={"event": "batch.item_failed", "article_id": article_id},
                )
                if options.on_progress is not None:
                    options.on_progress(completed, total)
                if options.on_error is not None:
                    options.on_error(exc, article_id)
                return failure
            result.successful.append(article)
            completed += 1
            if options.on_progress is not None:
                options.on_progress(completed, total)
            return None

        chunks = chunked(items, options.concurrency)
        for number, chunk in enumerate(chunks, start=1):
            outcomes = await asyncio.gather(*(_process(article_id) for article_id in chunk))
            failures = [outcome for outcome in outcomes if outcome is not None]
            result.total_processed = completed
            log_event(
                logger,
                "batch.chunk_completed",
                chunk=number,
                chunks=len(chunks),
                completed=completed,
                total=total,
            )
            if failures and not options.continue_on_error:
                result.total_time_ms = int((time.perf_counter() - started) * 1000)
                raise failures[0].error

        result.total_processed = completed
        result.total_time_ms = int((time.perf_counter() - started) * 1000)
        log_event(
            logger,
            "batch.completed",
            total=total,
            successful=len(result.successful),
            failed=len(result.failed),
            duration_ms=result.total_time_ms,
        )
        return result


__all__ = ["BatchOrchestrator", "Pipeline", "chunked"]
