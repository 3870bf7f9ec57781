"""Turn block trees into markdown documents with localized media."""

from __future__ import annotations

import re
from textwrap import indent
from typing import TYPE_CHECKING, Mapping, Sequence

from dochub.core.media import MediaLocalizer, is_absolute_url
from dochub.core.models import Block, ConversionResult, MediaRef
from dochub.core.transforms import BlockTransform, TransformRegistry
from dochub.errors import (
    BlockNotFoundError,
    ConversionError,
    DocHubError,
    MaxRetriesExceededError,
    PageConversionError,
    PageNotFoundError,
)
from dochub.logging import get_logger

if TYPE_CHECKING:
    from dochub.core.fetcher import BlockFetcher

logger = get_logger(__name__)

MEDIA_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
BLOCK_SEPARATOR = "\n\n"
CHILD_INDENT = "    "

INDENTED_CHILD_TYPES = frozenset(
    {"bulleted_list_item", "numbered_list_item", "to_do", "toggle"}
)
QUOTED_CHILD_TYPES = frozenset({"quote", "callout"})

_TYPED_ERRORS = (
    PageNotFoundError,
    BlockNotFoundError,
    MaxRetriesExceededError,
    ConversionError,
)


def _table(rows: Sequence[str]) -> str:
    if not rows:
        return ""
    columns = rows[0].count(" | ") + 1
    separator = "| " + " | ".join(["---"] * columns) + " |"
    return "\n".join([rows[0], separator, *rows[1:]])


class DocumentConverter:
    """Render blocks through a :class:`TransformRegistry`.

    A block whose transform fails contributes an empty string. Media embedded
    in the rendered text is downloaded one reference at a time, in document
    order, so generated filenames only depend on position.
    """

    def __init__(
        self,
        *,
        localizer: MediaLocalizer,
        transforms: TransformRegistry | Mapping[str, BlockTransform] | None = None,
        fetcher: BlockFetcher | None = None,
    ) -> None:
        if isinstance(transforms, TransformRegistry):
            self._registry = transforms
        else:
            self._registry = TransformRegistry(transforms)
        self._localizer = localizer
        self._fetcher = fetcher

    async def convert(self, blocks: Sequence[Block]) -> ConversionResult:
        try:
            parts = [await self._render(block) for block in blocks]
            text = BLOCK_SEPARATOR.join(part for part in parts if part).strip()
            return await self._localize_media(text)
        except DocHubError:
            raise
        except Exception as exc:
            raise ConversionError() from exc

    async def convert_by_id(self, page_id: str) -> ConversionResult:
        """Fetch the block tree of ``page_id`` and convert it."""

        if self._fetcher is None:
            raise ConversionError("convert_by_id requires a block fetcher")
        try:
            blocks = await self._fetcher.fetch_blocks(page_id)
            return await self.convert(blocks)
        except _TYPED_ERRORS:
            raise
        except Exception as exc:
            raise PageConversionError(page_id) from exc

    async def _render(self, block: Block) -> str:
        try:
            text = await self._registry.apply(block)
        except Exception:
            logger.warning(
                "Failed to convert block %s (%s)",
                block.id,
                block.type,
                exc_info=True,
                extra={
                    "event": "converter.block_failed",
                    "block_id": block.id,
                    "block_type": block.type,
                },
            )
            return ""
        if not block.children:
            return text

        rendered = [await self._render(child) for child in block.children]
        children = [child for child in rendered if child]
        if not children:
            return text
        if block.type == "table":
            return _table(children)
        if block.type in INDENTED_CHILD_TYPES:
            nested = indent("\n".join(children), CHILD_INDENT)
        elif block.type in QUOTED_CHILD_TYPES:
            nested = "\n".join(
                f"> {line}" if line else ">"
                for line in BLOCK_SEPARATOR.join(children).split("\n")
            )
        else:
            nested = BLOCK_SEPARATOR.join(children)
            return BLOCK_SEPARATOR.join(part for part in (text, nested) if part)
        return f"{text}\n{nested}" if text else nested

    async def _localize_media(self, text: str) -> ConversionResult:
        media: list[MediaRef] = []
        pieces: list[str] = []
        cursor = 0
        index = 0
        for match in MEDIA_PATTERN.finditer(text):
            alt, url = match.group(1), match.group(2).strip()
            if not is_absolute_url(url):
                continue
            filename = self._localizer.filename(url, index)
            index += 1
            try:
                local_path = await self._localizer.download(url, filename)
            except DocHubError:
                logger.error(
                    "Failed to localize media %s",
                    url,
                    exc_info=True,
                    extra={"event": "converter.media_failed", "url": url},
                )
                continue
            document_path = self._localizer.to_document_path(local_path)
            media.append(
                MediaRef(
                    original_url=url,
                    local_path=local_path,
                    document_path=document_path,
                )
            )
            pieces.append(text[cursor : match.start()])
            pieces.append(f"![{alt}]({document_path})")
            cursor = match.end()
        pieces.append(text[cursor:])
        return ConversionResult(document="".join(pieces), media=tuple(media))


__all__ = ["DocumentConverter", "MEDIA_PATTERN"]
