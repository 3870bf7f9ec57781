"""Shared helpers for dochub components."""

from dochub.utils.classify import ErrorClassifier, ErrorKind
from dochub.utils.retry import Backoff, RetryPolicy, backoff_delay_ms, with_retry

__all__ = [
    "Backoff",
    "ErrorClassifier",
    "ErrorKind",
    "RetryPolicy",
    "backoff_delay_ms",
    "with_retry",
]
