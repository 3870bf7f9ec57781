"""Fetch, convert and localize building blocks of the article pipeline."""

from dochub.core.converter import DocumentConverter
from dochub.core.fetcher import BlockFetcher
from dochub.core.media import MediaLocalizer
from dochub.core.models import (
    ArticleData,
    ArticleMetadata,
    BatchOptions,
    BatchResult,
    Block,
    ChildrenState,
    ConversionResult,
    DocumentMetadata,
    FailedItem,
    MediaRef,
    ProcessedArticle,
    PropertyKind,
    PropertyValue,
    normalize_document_id,
)
from dochub.core.transforms import BlockTransform, TransformRegistry

__all__ = [
    "ArticleData",
    "ArticleMetadata",
    "BatchOptions",
    "BatchResult",
    "Block",
    "BlockFetcher",
    "BlockTransform",
    "ChildrenState",
    "ConversionResult",
    "DocumentConverter",
    "DocumentMetadata",
    "FailedItem",
    "MediaLocalizer",
    "MediaRef",
    "ProcessedArticle",
    "PropertyKind",
    "PropertyValue",
    "TransformRegistry",
    "normalize_document_id",
]
