"""Clients for the remote services dochub talks to."""

from dochub.integrations.notion_client import NotionApiError, NotionHttpClient

__all__ = ["NotionApiError", "NotionHttpClient"]
