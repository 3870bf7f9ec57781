"""Error taxonomy shared by the fetch, convert and batch layers."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable codes exposed on every :class:`DocHubError`."""

    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    BLOCK_NOT_FOUND = "BLOCK_NOT_FOUND"
    FETCH_ARTICLE_ERROR = "FETCH_ARTICLE_ERROR"
    MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"
    CONVERSION_ERROR = "CONVERSION_ERROR"
    PAGE_CONVERSION_ERROR = "PAGE_CONVERSION_ERROR"
    INVALID_URL = "INVALID_URL"
    INVALID_PROTOCOL = "INVALID_PROTOCOL"
    DOWNLOAD_ERROR = "DOWNLOAD_ERROR"
    DIRECTORY_CREATE_ERROR = "DIRECTORY_CREATE_ERROR"
    PROCESS_FAILED = "PROCESS_FAILED"
    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"
    INVALID_CONFIG = "INVALID_CONFIG"


class DocHubError(Exception):
    """Base exception carrying a message, a stable code and optional detail."""

    __slots__ = ("message", "code", "meta")

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        meta: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.meta = dict(meta) if meta is not None else None

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.meta:
            payload["meta"] = {key: _plain(value) for key, value in self.meta.items()}
        if self.__cause__ is not None:
            payload["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"
        return payload


def _plain(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


class PageNotFoundError(DocHubError):
    def __init__(self, page_id: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Page not found: {page_id}",
            code=ErrorCode.PAGE_NOT_FOUND,
            meta={"page_id": page_id},
        )


class BlockNotFoundError(DocHubError):
    def __init__(self, block_id: str) -> None:
        super().__init__(
            f"Block not found: {block_id}",
            code=ErrorCode.BLOCK_NOT_FOUND,
            meta={"block_id": block_id},
        )


class FetchArticleError(DocHubError):
    def __init__(self, article_id: str) -> None:
        super().__init__(
            f"Failed to fetch article: {article_id}",
            code=ErrorCode.FETCH_ARTICLE_ERROR,
            meta={"article_id": article_id},
        )


class MaxRetriesExceededError(DocHubError):
    """Raised once a retried operation used up its attempts.

    The last failure is chained as ``__cause__`` and its message is repeated so
    that message based classification still sees the underlying problem.
    """

    def __init__(self, operation: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}",
            code=ErrorCode.MAX_RETRIES_EXCEEDED,
            meta={"operation": operation, "attempts": attempts},
        )
        self.operation = operation
        self.attempts = attempts
        self.__cause__ = last_error


class ConversionError(DocHubError):
    def __init__(self, message: str = "Markdown conversion failed") -> None:
        super().__init__(message, code=ErrorCode.CONVERSION_ERROR)


class PageConversionError(DocHubError):
    def __init__(self, page_id: str) -> None:
        super().__init__(
            f"Failed to convert page: {page_id}",
            code=ErrorCode.PAGE_CONVERSION_ERROR,
            meta={"page_id": page_id},
        )


class InvalidUrlError(DocHubError):
    def __init__(self, url: str) -> None:
        super().__init__(
            f"Invalid media URL: {url}", code=ErrorCode.INVALID_URL, meta={"url": url}
        )


class InvalidProtocolError(DocHubError):
    def __init__(self, url: str, scheme: str) -> None:
        super().__init__(
            f"Unsupported media URL protocol '{scheme}': {url}",
            code=ErrorCode.INVALID_PROTOCOL,
            meta={"url": url, "scheme": scheme},
        )


class DownloadError(DocHubError):
    def __init__(self, url: str, *, status_code: int | None = None) -> None:
        meta: dict[str, Any] = {"url": url}
        if status_code is None:
            message = f"Error while downloading media: {url}"
        else:
            message = f"Media download failed with status {status_code}: {url}"
            meta["status"] = status_code
        super().__init__(message, code=ErrorCode.DOWNLOAD_ERROR, meta=meta)
        self.status_code = status_code


class DirectoryCreateError(DocHubError):
    def __init__(self, directory: str) -> None:
        super().__init__(
            f"Failed to create media directory: {directory}",
            code=ErrorCode.DIRECTORY_CREATE_ERROR,
            meta={"directory": directory},
        )


class ProcessFailedError(DocHubError):
    def __init__(self, article_id: str, cause: BaseException) -> None:
        super().__init__(
            f"Failed to process article {article_id}: {cause}",
            code=ErrorCode.PROCESS_FAILED,
            meta={"article_id": article_id},
        )
        self.article_id = article_id


class MissingCredentialError(DocHubError):
    def __init__(self, message: str = "Notion API key is not configured") -> None:
        super().__init__(message, code=ErrorCode.MISSING_CREDENTIAL)


class InvalidConfigError(DocHubError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message, code=ErrorCode.INVALID_CONFIG, meta={"field": field})
        self.field = field


__all__ = [
    "BlockNotFoundError",
    "ConversionError",
    "DirectoryCreateError",
    "DocHubError",
    "DownloadError",
    "ErrorCode",
    "FetchArticleError",
    "InvalidConfigError",
    "InvalidProtocolError",
    "InvalidUrlError",
    "MaxRetriesExceededError",
    "MissingCredentialError",
    "PageConversionError",
    "PageNotFoundError",
    "ProcessFailedError",
]
