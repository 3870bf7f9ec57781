"""Batch execution of article pipelines."""

from dochub.orchestrator.batch import BatchOrchestrator, Pipeline, chunked

__all__ = ["BatchOrchestrator", "Pipeline", "chunked"]
