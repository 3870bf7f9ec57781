"""Relay Notion webhooks to a GitHub ``repository_dispatch`` event."""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Mapping

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, Response
import httpx
from pydantic import BaseModel

from dochub.config import RelayConfig
from dochub.logging import get_logger, log_event

logger = get_logger(__name__)

GITHUB_API_BASE = "https://api.github.com"
DISPATCH_EVENT_TYPE = "notion-article-updated"

# GitHub rejects client payloads with more than ten top level keys.
ALLOWED_PAYLOAD_KEYS = (
    "id",
    "timestamp",
    "data",
    "type",
    "entity",
    "authors",
    "integration_id",
    "subscription_id",
    "workspace_name",
    "workspace_id",
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class WebhookDispatchError(RuntimeError):
    """Raised when GitHub refused or never received the dispatch."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class WebhookResponse(BaseModel):
    success: bool
    message: str | None = None
    error: str | None = None


def filter_payload(body: Mapping[str, Any]) -> dict[str, Any]:
    return {key: body[key] for key in ALLOWED_PAYLOAD_KEYS if key in body}


@dataclass(slots=True)
class GitHubDispatcher:
    token: str
    owner: str
    repo: str
    base_url: str = GITHUB_API_BASE
    transport: httpx.AsyncBaseTransport | None = None
    timeout_ms: int = 10_000

    @classmethod
    def from_config(
        cls,
        config: RelayConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> GitHubDispatcher:
        return cls(
            token=config.github_token,
            owner=config.github_owner,
            repo=config.github_repo,
            transport=transport,
        )

    async def dispatch(self, event_type: str, client_payload: Mapping[str, Any]) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        body = {"event_type": event_type, "client_payload": dict(client_payload)}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url.rstrip("/"),
                headers=headers,
                timeout=httpx.Timeout(self.timeout_ms / 1000),
                transport=self.transport,
            ) as client:
                response = await client.post(
                    f"/repos/{self.owner}/{self.repo}/dispatches", json=body
                )
        except httpx.HTTPError as exc:
            raise WebhookDispatchError(f"GitHub dispatch request failed: {exc}") from exc

        if not response.is_success:
            raise WebhookDispatchError(
                f"GitHub dispatch failed ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )


def _json(status_code: int, content: Mapping[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=dict(content), headers=CORS_HEADERS)


def _resolve_dispatcher(request: Request) -> GitHubDispatcher:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        dispatcher = GitHubDispatcher.from_config(RelayConfig.from_env())
        request.app.state.dispatcher = dispatcher
    return dispatcher


router = APIRouter(tags=["Webhooks"])


@router.api_route(
    "/api/webhooks",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    response_model=WebhookResponse,
)
async def relay_webhook(request: Request) -> Response:
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)
    if request.method != "POST":
        return _json(status.HTTP_405_METHOD_NOT_ALLOWED, {"error": "Method not allowed"})

    try:
        raw_body = await request.body()
        body = json.loads(raw_body) if raw_body else {}
        if not isinstance(body, Mapping):
            raise ValueError("Webhook body must be a JSON object")
        payload = filter_payload(body)
        dispatcher = _resolve_dispatcher(request)
        await dispatcher.dispatch(DISPATCH_EVENT_TYPE, payload)
    except Exception as exc:
        logger.error(
            "Failed to relay webhook: %s",
            exc,
            exc_info=True,
            extra={"event": "webhook.failed"},
        )
        failure = WebhookResponse(success=False, error=str(exc))
        return _json(
            status.HTTP_500_INTERNAL_SERVER_ERROR, failure.model_dump(exclude_none=True)
        )

    log_event(
        logger,
        "webhook.dispatched",
        event_type=DISPATCH_EVENT_TYPE,
        keys=len(payload),
    )
    success = WebhookResponse(success=True, message="Webhook processed successfully")
    return _json(status.HTTP_200_OK, success.model_dump(exclude_none=True))


__all__ = [
    "ALLOWED_PAYLOAD_KEYS",
    "CORS_HEADERS",
    "DISPATCH_EVENT_TYPE",
    "GitHubDispatcher",
    "WebhookDispatchError",
    "WebhookResponse",
    "filter_payload",
    "router",
]
