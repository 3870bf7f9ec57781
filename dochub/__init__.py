"""Fetch documents from Notion and convert them into markdown articles."""

from dochub.config import ProcessorConfig
from dochub.processor import ArticleProcessor

__all__ = ["ArticleProcessor", "ProcessorConfig"]

__version__ = "0.4.0"
