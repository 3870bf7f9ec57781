"""Async HTTP client for the subset of the Notion API used by the fetcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import httpx

NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
DEFAULT_PAGE_SIZE = 100

# Wording matters: ErrorClassifier keys off these phrases.
_STATUS_LABELS = {
    400: "bad request",
    401: "unauthorized",
    403: "forbidden",
    404: "not found",
    409: "conflict",
    429: "rate limit exceeded",
}


class NotionApiError(RuntimeError):
    """Raised when a Notion request failed or returned an error payload."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        api_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.api_code = api_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404 or self.api_code == "object_not_found"


@dataclass(slots=True)
class NotionHttpClient:
    """HTTPX based client performing exactly one request per call.

    Retries are the caller's concern; see :mod:`dochub.core.fetcher`.
    """

    api_key: str
    base_url: str = NOTION_API_BASE
    notion_version: str = NOTION_VERSION
    transport: httpx.AsyncBaseTransport | None = None
    timeout_ms: int = 30_000

    async def retrieve_page(self, page_id: str) -> Mapping[str, Any]:
        """Return the page record for ``page_id``."""

        return await self._request("GET", f"/pages/{page_id}")

    async def list_block_children(
        self,
        block_id: str,
        *,
        start_cursor: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Mapping[str, Any]:
        """Return one page of children: ``results``, ``next_cursor``, ``has_more``."""

        params: dict[str, Any] = {"page_size": page_size}
        if start_cursor:
            params["start_cursor"] = start_cursor
        return await self._request("GET", f"/blocks/{block_id}/children", params=params)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> Mapping[str, Any]:
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "Notion-Version": self.notion_version,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url.rstrip("/"),
                timeout=self._build_timeout(self.timeout_ms),
                headers=headers,
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, params=params)
        except httpx.TimeoutException as exc:
            raise NotionApiError(f"Notion API request timeout: {method} {path}") from exc
        except httpx.HTTPError as exc:
            raise NotionApiError(f"Notion API network error: {exc}") from exc

        if response.status_code == httpx.codes.OK:
            payload = self._decode_json(response)
            if not isinstance(payload, Mapping):
                raise NotionApiError("Notion API returned invalid payload", status_code=200)
            return payload
        raise self._error_from_response(response)

    def _error_from_response(self, response: httpx.Response) -> NotionApiError:
        status = response.status_code
        api_code: str | None = None
        detail = response.text[:200]
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, Mapping):
            api_code = str(body.get("code") or "") or None
            detail = str(body.get("message") or detail)

        if status in _STATUS_LABELS:
            label = _STATUS_LABELS[status]
        elif status >= 500:
            label = "server error"
        else:
            label = "unexpected status"
        return NotionApiError(
            f"Notion API {label} ({status}): {detail}",
            status_code=status,
            api_code=api_code,
        )

    @staticmethod
    def _decode_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise NotionApiError(
                "Notion API returned invalid JSON", status_code=response.status_code
            ) from exc

    @staticmethod
    def _build_timeout(timeout_ms: int) -> httpx.Timeout:
        timeout_seconds = max(timeout_ms, 100) / 1000
        return httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0))


__all__ = ["DEFAULT_PAGE_SIZE", "NOTION_API_BASE", "NotionApiError", "NotionHttpClient"]
