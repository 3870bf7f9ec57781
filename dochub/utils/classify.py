"""Message based error classification with per-kind cool-down."""

from __future__ import annotations

import asyncio
from enum import Enum


class ErrorKind(str, Enum):
    NETWORK_ERROR = "NETWORK_ERROR"
    API_LIMIT = "API_LIMIT"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INVALID_DATA = "INVALID_DATA"
    UNKNOWN = "UNKNOWN"


# Checked in order; the first matching keyword wins.
_KEYWORDS: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (ErrorKind.API_LIMIT, ("rate limit", "too many requests")),
    (ErrorKind.NETWORK_ERROR, ("network", "timeout", "connection")),
    (ErrorKind.PERMISSION_DENIED, ("unauthorized", "forbidden")),
    (ErrorKind.INVALID_DATA, ("invalid", "not found", "bad request")),
)

_RETRYABLE = frozenset({ErrorKind.NETWORK_ERROR, ErrorKind.API_LIMIT})

_RECOVERY_DELAYS_MS = {
    ErrorKind.API_LIMIT: 5000,
    ErrorKind.NETWORK_ERROR: 1000,
}


class ErrorClassifier:
    """Advisory retry policy derived from an error's message.

    This does not retry anything itself; callers combine it with
    :func:`dochub.utils.retry.with_retry`.
    """

    def classify(self, error: BaseException) -> ErrorKind:
        message = str(error).lower()
        for kind, keywords in _KEYWORDS:
            if any(keyword in message for keyword in keywords):
                return kind
        return ErrorKind.UNKNOWN

    def should_retry(self, kind: ErrorKind) -> bool:
        return kind in _RETRYABLE

    def recovery_delay_ms(self, kind: ErrorKind) -> int:
        return _RECOVERY_DELAYS_MS.get(kind, 0)

    async def recover(self, kind: ErrorKind) -> None:
        """Sleep the cool-down associated with ``kind`` (if any)."""

        delay_ms = self.recovery_delay_ms(kind)
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000.0)


__all__ = ["ErrorClassifier", "ErrorKind"]
