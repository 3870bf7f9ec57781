"""Download embedded media and map it to document-relative paths."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path, PurePosixPath
import re
from urllib.parse import unquote, urlsplit

import httpx

from dochub.errors import (
    DirectoryCreateError,
    DownloadError,
    InvalidProtocolError,
    InvalidUrlError,
)
from dochub.logging import get_logger

logger = get_logger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})
DEFAULT_EXTENSION = ".png"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def is_absolute_url(candidate: str) -> bool:
    """Return ``True`` when ``candidate`` carries a scheme and a host."""

    try:
        parts = urlsplit(candidate.strip())
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


class MediaLocalizer:
    """Materialize remote media inside ``directory``.

    Filenames are derived from the URL plus a caller supplied index; the
    localizer itself keeps no state between downloads.
    """

    def __init__(
        self,
        directory: str | os.PathLike[str] = "./images",
        url_prefix: str = "",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_ms: int = 30_000,
        root: str | os.PathLike[str] | None = None,
    ) -> None:
        self._directory = Path(directory)
        self._url_prefix = url_prefix
        self._transport = transport
        self._timeout_ms = timeout_ms
        self._root = Path(root) if root is not None else None

    @property
    def directory(self) -> Path:
        return self._directory

    def validate(self, url: str) -> str:
        try:
            parts = urlsplit(url.strip())
        except ValueError as exc:
            raise InvalidUrlError(url) from exc
        if not parts.scheme or not parts.netloc:
            raise InvalidUrlError(url)
        scheme = parts.scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            raise InvalidProtocolError(url, scheme)
        try:
            httpx.URL(url.strip())
        except httpx.InvalidURL as exc:
            raise InvalidUrlError(url) from exc
        return url.strip()

    def filename(self, url: str, index: int) -> str:
        """Return ``{basename}_{index}{extension}`` for the URL's last segment."""

        segment = PurePosixPath(unquote(urlsplit(url).path)).name
        stem, extension = os.path.splitext(segment)
        stem = _UNSAFE_FILENAME_CHARS.sub("_", stem).strip("_") or "image"
        extension = _UNSAFE_FILENAME_CHARS.sub("", extension)
        if len(extension) < 2:
            extension = DEFAULT_EXTENSION
        return f"{stem}_{index}{extension.lower()}"

    def ensure_directory(self) -> Path:
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DirectoryCreateError(str(self._directory)) from exc
        return self._directory

    async def download(self, url: str, filename: str) -> str:
        """Fetch ``url`` and store it as ``filename``; return the local path."""

        url = self.validate(url)
        await asyncio.to_thread(self.ensure_directory)
        target = self._directory / filename

        timeout = httpx.Timeout(self._timeout_ms / 1000)
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=timeout, follow_redirects=True
            ) as client:
                response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DownloadError(url) from exc

        if not response.is_success:
            raise DownloadError(url, status_code=response.status_code)

        try:
            await asyncio.to_thread(target.write_bytes, response.content)
        except OSError as exc:
            raise DownloadError(url) from exc

        logger.debug(
            "Stored media %s (%d bytes)",
            target,
            len(response.content),
            extra={"event": "media.downloaded", "url": url},
        )
        return str(target)

    def to_document_path(self, local_path: str | os.PathLike[str]) -> str:
        """Return the path a document should use to reference ``local_path``."""

        if self._url_prefix:
            return f"{self._url_prefix.rstrip('/')}/{os.path.basename(local_path)}"
        root = self._root if self._root is not None else Path.cwd()
        relative = os.path.relpath(os.path.abspath(local_path), os.path.abspath(root))
        return Path(relative).as_posix()


__all__ = ["ALLOWED_SCHEMES", "DEFAULT_EXTENSION", "MediaLocalizer", "is_absolute_url"]
