"""Logging configuration and structured event helpers for dochub."""

from __future__ import annotations

from collections.abc import Mapping
import logging
import sys
import time
from typing import Any, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_JSON_PRIMITIVES = (str, int, float, bool, type(None))
# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED_RECORD_KEYS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class EventFormatter(logging.Formatter):
    """Render ``extra`` fields of structured events after the message."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_RECORD_KEYS and key != "event"
        }
        if not fields:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        return f"{base} | {rendered}"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Install stdout (and optional file) handlers for the whole process."""

    formatter = EventFormatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _check_json(value: Any, *, path: str) -> None:
    if isinstance(value, _JSON_PRIMITIVES):
        return
    if isinstance(value, Mapping):
        for key, nested in value.items():
            if not isinstance(key, str):
                raise TypeError(f"Keys in '{path}' must be strings")
            _check_json(nested, path=f"{path}.{key}")
        return
    if isinstance(value, (list, tuple)):
        for index, nested in enumerate(value):
            _check_json(nested, path=f"{path}[{index}]")
        return
    raise TypeError(f"Unsupported value in '{path}': {type(value).__name__}")


def log_event(logger: Any, event: str, /, **fields: Any) -> None:
    """Emit ``event`` at INFO with flat fields and an optional nested ``meta``."""

    if not isinstance(event, str) or not event.strip():
        raise ValueError("event must be a non-empty string")

    extra: dict[str, Any] = {"event": event}
    meta = fields.pop("meta", None)
    for name, value in fields.items():
        if not isinstance(value, _JSON_PRIMITIVES):
            raise TypeError(f"Field '{name}' must be a flat JSON-compatible value")
        extra[name] = value
    if meta is not None:
        if not isinstance(meta, Mapping):
            raise TypeError("meta must be a mapping if provided")
        _check_json(meta, path="meta")
        extra["meta"] = dict(meta)

    logger.info(event, extra=extra)


def now_ms() -> int:
    """Return the current UNIX timestamp in milliseconds."""

    return int(time.time() * 1000)


__all__ = ["EventFormatter", "configure_logging", "get_logger", "log_event", "now_ms"]
