"""HTTP surface of the webhook relay."""

from dochub.api.webhooks import GitHubDispatcher, WebhookDispatchError, router

__all__ = ["GitHubDispatcher", "WebhookDispatchError", "router"]
