"""FastAPI application exposing the webhook relay."""

from __future__ import annotations

from fastapi import FastAPI

from dochub import __version__
from dochub.api.webhooks import GitHubDispatcher, router as webhooks_router
from dochub.logging import get_logger

logger = get_logger(__name__)


def create_app(dispatcher: GitHubDispatcher | None = None) -> FastAPI:
    """Build the relay app; without a dispatcher one is built from the environment."""

    app = FastAPI(title="dochub webhook relay", version=__version__)
    app.state.dispatcher = dispatcher
    app.include_router(webhooks_router)
    logger.debug("Webhook relay ready", extra={"event": "relay.ready"})
    return app


app = create_app()
