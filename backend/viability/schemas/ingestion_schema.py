"""Pydantic schemas for ingestion jobs and the worker payload."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import Field

from .base import CamelModel
from .discovery_schema import DiscoveredUrl

JobStatus = Literal["pending", "processing", "completed", "failed"]


class IngestRequest(CamelModel):
    project_id: UUID = Field(..., description="Project that will own the ingested chunks")
    urls: List[DiscoveredUrl] = Field(
        ...,
        min_length=1,
        description="User-confirmed subset of discovered URLs",
    )


class IngestResponse(CamelModel):
    job_id: str
    status: JobStatus
    message: str = ""


class JobStatusResponse(CamelModel):
    """Polling view of an IngestionJob."""

    id: str
    status: JobStatus
    url_count: int
    chunks_count: int
    error_message: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class IngestionEvent(CamelModel):
    """Fire-and-forget payload handed to the ingestion worker."""

    job_id: str
    project_id: str
    user_id: str
    urls: List[DiscoveredUrl]


class RagStatusResponse(CamelModel):
    project_id: str
    has_job: bool
    status: Optional[JobStatus] = None
    chunks_count: int = 0
    last_job_at: Optional[datetime] = None
