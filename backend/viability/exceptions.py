"""Error taxonomy for the discovery → ingestion → retrieval pipeline.

Services raise these; routes translate them into ``HTTPException``.

- ValidationFailure       malformed input, reported to the caller, no retry
- GenerationFailure       planner/ranker LLM output unusable, caller may retry
- PerSourceFailure        one URL failed during ingestion, logged and skipped
- DispatchFailure         worker invocation could not be submitted
- JobFailure              error escaped the per-URL boundary inside the worker
- EmbeddingModelMismatch  query and corpus vectors come from different models
"""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ValidationFailure(PipelineError):
    pass


class GenerationFailure(PipelineError):
    pass


class PerSourceFailure(PipelineError):
    """A single source URL could not be fetched, extracted or embedded."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class DispatchFailure(PipelineError):
    def __init__(self, job_id: str, reason: str):
        super().__init__(f"Failed to dispatch ingestion job {job_id}: {reason}")
        self.job_id = job_id
        self.reason = reason


class JobFailure(PipelineError):
    def __init__(self, job_id: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f"Ingestion job {job_id} failed: {reason}")
        self.job_id = job_id
        self.reason = reason
        self.__cause__ = cause


class EmbeddingModelMismatch(PipelineError):
    pass
