"""Retrieve document records and their full block trees from Notion."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, TypeVar

from dochub.core.models import ArticleData, Block, DocumentMetadata
from dochub.core.properties import extract_title, parse_properties
from dochub.errors import (
    BlockNotFoundError,
    FetchArticleError,
    MaxRetriesExceededError,
    PageNotFoundError,
)
from dochub.integrations.notion_client import (
    DEFAULT_PAGE_SIZE,
    NotionApiError,
    NotionHttpClient,
)
from dochub.logging import get_logger
from dochub.utils.retry import Backoff, RetryPolicy, with_retry

T = TypeVar("T")

logger = get_logger(__name__)

_TYPED_ERRORS = (PageNotFoundError, BlockNotFoundError, MaxRetriesExceededError)


def _parse_timestamp(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def _is_retryable(error: Exception) -> bool:
    return not isinstance(error, (PageNotFoundError, BlockNotFoundError))


class BlockFetcher:
    """Fetch metadata and recursively paginated block trees.

    Every remote call is retried on its own. Child lists are fetched one block
    at a time, in listing order, so a deep tree never bursts the API's rate
    limit.
    """

    def __init__(
        self,
        client: NotionHttpClient,
        *,
        max_retries: int = 3,
        retry_delay_ms: int = 1000,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._client = client
        self._page_size = page_size
        self._policy = RetryPolicy(
            max_retries=max_retries,
            base_delay_ms=retry_delay_ms,
            backoff=Backoff.LINEAR,
            should_retry=_is_retryable,
        )

    async def _call(self, operation: Callable[[], Awaitable[T]], name: str) -> T:
        return await with_retry(operation, self._policy, operation_name=name)

    async def fetch_page_record(self, page_id: str) -> Mapping[str, Any]:
        """Return the raw page record, failing with :class:`PageNotFoundError`."""

        async def _retrieve() -> Mapping[str, Any]:
            try:
                page = await self._client.retrieve_page(page_id)
            except NotionApiError as exc:
                if exc.is_not_found:
                    raise PageNotFoundError(page_id) from exc
                raise
            if page.get("object") != "page" or "properties" not in page:
                raise PageNotFoundError(page_id, f"Object is not a page: {page_id}")
            return page

        return await self._call(_retrieve, "retrieve page")

    async def fetch_metadata(self, page_id: str) -> DocumentMetadata:
        page = await self.fetch_page_record(page_id)
        properties = parse_properties(page.get("properties"))
        return DocumentMetadata(
            id=page_id,
            title=extract_title(properties),
            created_at=_parse_timestamp(page.get("created_time")),
            updated_at=_parse_timestamp(page.get("last_edited_time")),
            properties=properties,
        )

    async def _list_children_page(
        self, block_id: str, cursor: str | None
    ) -> Mapping[str, Any]:
        async def _list() -> Mapping[str, Any]:
            try:
                return await self._client.list_block_children(
                    block_id, start_cursor=cursor, page_size=self._page_size
                )
            except NotionApiError as exc:
                if exc.is_not_found:
                    raise BlockNotFoundError(block_id) from exc
                raise

        return await self._call(_list, "list block children")

    async def fetch_blocks(self, block_id: str) -> list[Block]:
        """Return every child block of ``block_id`` with nested children loaded."""

        listed: list[Block] = []
        cursor: str | None = None
        while True:
            response = await self._list_children_page(block_id, cursor)
            for raw in response.get("results") or ():
                if isinstance(raw, Mapping):
                    listed.append(Block.from_api(raw))
            cursor = response.get("next_cursor") or None
            if not cursor:
                break

        blocks: list[Block] = []
        for block in listed:
            if block.has_children:
                children = await self.fetch_blocks(block.id)
                block = block.with_children(children)
            blocks.append(block)

        logger.debug(
            "Fetched %d blocks for %s",
            len(blocks),
            block_id,
            extra={"event": "fetcher.blocks_fetched", "block_id": block_id},
        )
        return blocks

    async def fetch_article(self, article_id: str) -> ArticleData:
        """Fetch metadata and blocks concurrently.

        Both lookups run to completion before a failure is raised, metadata
        errors first, so no retry loop outlives the call.
        """

        metadata, blocks = await asyncio.gather(
            self.fetch_metadata(article_id),
            self.fetch_blocks(article_id),
            return_exceptions=True,
        )
        for outcome in (metadata, blocks):
            if not isinstance(outcome, BaseException):
                continue
            if isinstance(outcome, _TYPED_ERRORS) or not isinstance(outcome, Exception):
                raise outcome
            raise FetchArticleError(article_id) from outcome
        return ArticleData(metadata=metadata, blocks=tuple(blocks))


__all__ = ["BlockFetcher"]
