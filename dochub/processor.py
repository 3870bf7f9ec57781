"""High level entry points: process one article or a batch of them."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Iterable, Mapping

import httpx

from dochub.config import ProcessorConfig, describe_config
from dochub.core.converter import DocumentConverter
from dochub.core.fetcher import BlockFetcher
from dochub.core.media import MediaLocalizer
from dochub.core.models import (
    ArticleMetadata,
    BatchOptions,
    BatchResult,
    ProcessedArticle,
    normalize_document_id,
)
from dochub.core.properties import extract_author, extract_status, extract_tags
from dochub.errors import ProcessFailedError
from dochub.integrations.notion_client import NotionHttpClient
from dochub.logging import get_logger, log_event, now_ms
from dochub.orchestrator.batch import BatchOrchestrator
from dochub.utils.classify import ErrorClassifier, ErrorKind
from dochub.utils.retry import Backoff, RetryPolicy, with_retry

logger = get_logger(__name__)

DEFAULT_ARTICLE_RETRY = RetryPolicy(
    max_retries=3, base_delay_ms=1000, backoff=Backoff.EXPONENTIAL
)
DEFAULT_BATCH_RETRY = RetryPolicy(max_retries=2, base_delay_ms=500, backoff=Backoff.LINEAR)


class ArticleProcessor:
    """Wire the fetcher, converter and media localizer for one configuration."""

    def __init__(
        self,
        config: ProcessorConfig,
        *,
        client: NotionHttpClient | None = None,
        media_transport: httpx.AsyncBaseTransport | None = None,
        classifier: ErrorClassifier | None = None,
    ) -> None:
        self.config = config
        self.client = client or NotionHttpClient(api_key=config.credential)
        self.fetcher = BlockFetcher(
            self.client,
            max_retries=config.max_retries,
            retry_delay_ms=config.retry_delay_ms,
        )
        self.localizer = MediaLocalizer(
            config.image_directory,
            config.image_url_prefix,
            transport=media_transport,
        )
        self.converter = DocumentConverter(
            localizer=self.localizer,
            transforms=config.custom_transformers,
            fetcher=self.fetcher,
        )
        self.classifier = classifier or ErrorClassifier()

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, Any] | None = None,
        *,
        client: NotionHttpClient | None = None,
        media_transport: httpx.AsyncBaseTransport | None = None,
        **overrides: Any,
    ) -> ArticleProcessor:
        config = ProcessorConfig.from_env(env, **overrides)
        describe_config(config)
        return cls(config, client=client, media_transport=media_transport)

    async def process_article(self, article_id: str) -> ProcessedArticle:
        """Fetch, convert and localize one article.

        Every failure is raised as :class:`ProcessFailedError` chained to the
        underlying error.
        """

        started = now_ms()
        try:
            normalized = normalize_document_id(article_id)
            data = await self.fetcher.fetch_article(normalized)
            conversion = await self.converter.convert(data.blocks)
        except Exception as exc:
            logger.error(
                "Failed to process article %s: %s",
                article_id,
                exc,
                extra={"event": "processor.failed", "article_id": article_id},
            )
            raise ProcessFailedError(article_id, exc) from exc

        properties = data.metadata.properties
        metadata = ArticleMetadata(
            document=data.metadata,
            tags=extract_tags(properties),
            author=extract_author(properties),
            status=extract_status(properties),
        )
        elapsed_ms = now_ms() - started
        log_event(
            logger,
            "processor.article_processed",
            article_id=normalized,
            blocks=len(data.blocks),
            media=len(conversion.media),
            duration_ms=elapsed_ms,
        )
        return ProcessedArticle(
            metadata=metadata,
            document=conversion.document,
            media=conversion.media,
            processed_at=datetime.now(UTC),
            processing_time_ms=elapsed_ms,
        )

    async def process_many(
        self,
        article_ids: Iterable[str],
        options: BatchOptions | None = None,
    ) -> BatchResult:
        orchestrator = BatchOrchestrator(self.process_article)
        return await orchestrator.process_many(article_ids, options)

    async def process_article_with_retry(
        self,
        article_id: str,
        policy: RetryPolicy | None = None,
    ) -> ProcessedArticle:
        """Retry ``process_article`` for retryable error kinds only.

        Network and rate limit failures wait the classifier's cool-down before
        the next attempt; any other kind propagates at once.
        """

        policy = policy or DEFAULT_ARTICLE_RETRY
        classifier = self.classifier
        pending: list[ErrorKind] = []

        async def _attempt() -> ProcessedArticle:
            if pending:
                await classifier.recover(pending.pop())
            return await self.process_article(article_id)

        def _should_retry(error: Exception) -> bool:
            kind = classifier.classify(error)
            if not classifier.should_retry(kind):
                logger.info(
                    "Not retrying article %s (%s)",
                    article_id,
                    kind.value,
                    extra={"event": "processor.retry_skipped", "kind": kind.value},
                )
                return False
            if policy.should_retry is not None and not policy.should_retry(error):
                return False
            pending[:] = [kind]
            return True

        return await with_retry(
            _attempt,
            replace(policy, should_retry=_should_retry),
            operation_name=f"process article {article_id}",
        )

    async def process_many_with_retry(
        self,
        article_ids: Iterable[str],
        options: BatchOptions | None = None,
        policy: RetryPolicy | None = None,
    ) -> BatchResult:
        orchestrator = BatchOrchestrator(
            self.process_article, retry_policy=policy or DEFAULT_BATCH_RETRY
        )
        return await orchestrator.process_many(article_ids, options)

    async def test_connection(self, test_page_id: str | None = None) -> bool:
        """Return whether the metadata of ``test_page_id`` can be fetched."""

        if not test_page_id or not test_page_id.strip():
            logger.warning(
                "No test page id configured; skipping connection test",
                extra={"event": "processor.connection_skipped"},
            )
            return False
        try:
            await self.fetcher.fetch_metadata(normalize_document_id(test_page_id))
        except Exception as exc:
            logger.error(
                "Connection test failed: %s",
                exc,
                extra={"event": "processor.connection_failed"},
            )
            return False
        log_event(logger, "processor.connection_ok", page_id=test_page_id)
        return True


__all__ = [
    "ArticleProcessor",
    "DEFAULT_ARTICLE_RETRY",
    "DEFAULT_BATCH_RETRY",
]
