"""Data models for documents, blocks, conversions and batch runs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
import re
from typing import Any, Callable, Iterator, Mapping, Sequence

from dochub.errors import DocHubError, InvalidConfigError

_MEDIA_FORMAT_PATTERN = re.compile(r"\.([a-zA-Z0-9]+)(?:\?|$)")


def normalize_document_id(raw: str) -> str:
    """Strip whitespace and dashes from a document identifier."""

    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("document id must be a non-empty string")
    return raw.strip().replace("-", "")


def extract_media_format(url: str) -> str | None:
    """Return the lower-cased file extension found at the end of ``url``."""

    match = _MEDIA_FORMAT_PATTERN.search(url)
    return match.group(1).lower() if match else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class PropertyKind(str, Enum):
    """Tag of a schema-less document property."""

    TITLE = "title"
    RICH_TEXT = "rich_text"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    STATUS = "status"
    PEOPLE = "people"
    DATE = "date"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    URL = "url"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Any) -> PropertyKind:
        try:
            return cls(str(raw))
        except ValueError:
            return cls.OTHER


@dataclass(slots=True, frozen=True)
class PropertyValue:
    """One entry of a document's property bag, tagged by its kind."""

    name: str
    kind: PropertyKind
    raw: Mapping[str, Any]

    @classmethod
    def from_api(cls, name: str, payload: Mapping[str, Any]) -> PropertyValue:
        return cls(name=name, kind=PropertyKind.parse(payload.get("type")), raw=payload)

    @property
    def value(self) -> Any:
        """The kind specific body, e.g. the list of runs for ``title``."""

        return self.raw.get(str(self.raw.get("type")))


@dataclass(slots=True, frozen=True)
class DocumentMetadata:
    id: str
    title: str
    created_at: datetime | None
    updated_at: datetime | None
    properties: Mapping[str, PropertyValue] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "properties": {name: dict(prop.raw) for name, prop in self.properties.items()},
        }


class ChildrenState(str, Enum):
    NONE = "none"
    NOT_LOADED = "not_loaded"
    LOADED = "loaded"


@dataclass(slots=True, frozen=True)
class Block:
    """Node of a document's content tree.

    ``children`` stays ``None`` until a second retrieval pass loads it, which
    only happens for blocks flagged ``has_children``.
    """

    id: str
    type: str
    has_children: bool = False
    payload: Mapping[str, Any] = field(default_factory=dict)
    children: tuple[Block, ...] | None = None

    @classmethod
    def from_api(cls, obj: Mapping[str, Any]) -> Block:
        block_type = str(obj.get("type") or "unsupported")
        payload = obj.get(block_type)
        return cls(
            id=str(obj.get("id") or ""),
            type=block_type,
            has_children=bool(obj.get("has_children")),
            payload=payload if isinstance(payload, Mapping) else {},
        )

    @property
    def children_state(self) -> ChildrenState:
        if self.children is not None:
            return ChildrenState.LOADED
        if self.has_children:
            return ChildrenState.NOT_LOADED
        return ChildrenState.NONE

    def with_children(self, children: Sequence[Block]) -> Block:
        return replace(self, children=tuple(children))

    def walk(self) -> Iterator[Block]:
        """Yield this block and every loaded descendant, depth first."""

        yield self
        for child in self.children or ():
            yield from child.walk()


@dataclass(slots=True, frozen=True)
class ArticleData:
    metadata: DocumentMetadata
    blocks: tuple[Block, ...]


@dataclass(slots=True, frozen=True)
class MediaRef:
    original_url: str
    local_path: str
    document_path: str

    @property
    def format(self) -> str | None:
        return extract_media_format(self.original_url)

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalUrl": self.original_url,
            "localPath": self.local_path,
            "documentPath": self.document_path,
            "format": self.format,
        }


@dataclass(slots=True, frozen=True)
class ConversionResult:
    document: str
    media: tuple[MediaRef, ...] = ()


@dataclass(slots=True, frozen=True)
class ArticleMetadata:
    """Document metadata plus attributes derived from its properties."""

    document: DocumentMetadata
    tags: tuple[str, ...] = ()
    author: str | None = None
    status: str | None = None

    @property
    def id(self) -> str:
        return self.document.id

    @property
    def title(self) -> str:
        return self.document.title

    def to_dict(self) -> dict[str, Any]:
        payload = self.document.to_dict()
        payload.update({"tags": list(self.tags), "author": self.author, "status": self.status})
        return payload


@dataclass(slots=True, frozen=True)
class ProcessedArticle:
    metadata: ArticleMetadata
    document: str
    media: tuple[MediaRef, ...]
    processed_at: datetime
    processing_time_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "document": self.document,
            "media": [ref.to_dict() for ref in self.media],
            "processedAt": _iso(self.processed_at),
            "processingTimeMs": self.processing_time_ms,
        }


@dataclass(slots=True, frozen=True)
class FailedItem:
    id: str
    error: Exception

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, DocHubError):
            error: dict[str, Any] = self.error.as_dict()
        else:
            error = {"message": str(self.error), "type": type(self.error).__name__}
        return {"id": self.id, "error": error}


ProgressCallback = Callable[[int, int], None]
ErrorCallback = Callable[[Exception, str], None]


@dataclass(slots=True, frozen=True)
class BatchOptions:
    concurrency: int = 3
    continue_on_error: bool = True
    on_progress: ProgressCallback | None = None
    on_error: ErrorCallback | None = None

    def __post_init__(self) -> None:
        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int):
            raise InvalidConfigError("concurrency", "concurrency must be an integer")
        if self.concurrency < 1:
            raise InvalidConfigError("concurrency", "concurrency must be >= 1")


@dataclass(slots=True)
class BatchResult:
    """Outcome of a batch run.

    ``successful`` and ``failed`` grow while the run is in flight and are only
    touched by the orchestrator executing it.
    """

    successful: list[ProcessedArticle] = field(default_factory=list)
    failed: list[FailedItem] = field(default_factory=list)
    total_processed: int = 0
    total_time_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "successful": [article.to_dict() for article in self.successful],
            "failed": [item.to_dict() for item in self.failed],
            "totalProcessed": self.total_processed,
            "totalTimeMs": self.total_time_ms,
        }


__all__ = [
    "ArticleData",
    "ArticleMetadata",
    "BatchOptions",
    "BatchResult",
    "Block",
    "ChildrenState",
    "ConversionResult",
    "DocumentMetadata",
    "ErrorCallback",
    "FailedItem",
    "MediaRef",
    "ProcessedArticle",
    "ProgressCallback",
    "PropertyKind",
    "PropertyValue",
    "extract_media_format",
    "normalize_document_id",
]
