"""Discovery routes — URL discovery, ingestion dispatch and job polling.

Endpoints:
  POST /discovery/urls              — Discover ranked source URLs for an idea
  POST /discovery/ingest            — Start ingesting a confirmed URL subset
  GET  /discovery/status/{job_id}   — Poll an ingestion job
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..agents.discovery_agent.agent import discover_urls
from ..database import get_db
from ..constants import JOB_POLL_INTERVAL_SECONDS
from ..exceptions import DispatchFailure, GenerationFailure, ValidationFailure
from ..models.ingestion_job import IngestionJob
from ..models.project import Project
from ..models.user import User
from ..schemas.discovery_schema import DiscoveryRequest, DiscoveryResponse
from ..schemas.ingestion_schema import IngestRequest, IngestResponse, JobStatusResponse
from ..services import ingestion_jobs
from ..services.auth_dependency import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/discovery",
    tags=["Discovery"],
)


# ── Helpers ──────────────────────────────────────────────────────────────

def _job_to_response(job: IngestionJob) -> JobStatusResponse:
    return JobStatusResponse(
        id=str(job.id),
        status=job.status,
        url_count=job.url_count,
        chunks_count=job.chunks_count or 0,
        error_message=job.error_message,
        created_at=job.created_at,
        completed_at=job.completed_at,
    )


# ── Routes ───────────────────────────────────────────────────────────────

@router.post(
    "/urls",
    response_model=DiscoveryResponse,
    summary="Discover Source URLs",
    response_description="Ranked, categorised URLs plus discovery metadata",
)
async def discover(
    body: DiscoveryRequest,
    current_user: User = Depends(get_current_user),
) -> DiscoveryResponse:
    """Plan searches, query the web and rank the results for a business idea."""
    print(f"🧭 [DISCOVERY] Request from {current_user.email}: {body.business_idea[:80]}...")

    try:
        result = await discover_urls(body.business_idea)
    except ValidationFailure as exc:
        raise HTTPException(
            status_code=422,
            detail=str(exc),
        )
    except GenerationFailure as exc:
        logger.error("Discovery failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"URL discovery failed: {exc}",
        )

    return DiscoveryResponse(urls=result.urls, metadata=result.metadata)


@router.post(
    "/ingest",
    response_model=IngestResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start Ingestion",
    response_description="Job id to poll for ingestion progress",
)
def ingest(
    body: IngestRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> IngestResponse:
    """Create an ingestion job for the confirmed URLs and dispatch it.

    Returns immediately; poll ``GET /discovery/status/{job_id}``.
    """
    project = (
        db.query(Project)
        .filter(Project.id == body.project_id, Project.user_id == current_user.id)
        .first()
    )
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project {body.project_id} not found",
        )

    try:
        job = ingestion_jobs.create_job(
            db,
            project_id=project.id,
            user_id=current_user.id,
            urls=body.urls,
        )
    except ValidationFailure as exc:
        raise HTTPException(
            status_code=422,
            detail=str(exc),
        )
    except DispatchFailure as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not start ingestion job {exc.job_id}: {exc.reason}",
        )

    return IngestResponse(
        job_id=str(job.id),
        status="processing",
        message=(
            f"Ingestion started for {job.url_count} URLs; "
            f"poll status every {JOB_POLL_INTERVAL_SECONDS:.0f}s"
        ),
    )


@router.get(
    "/status/{job_id}",
    response_model=JobStatusResponse,
    summary="Ingestion Job Status",
    response_description="Current status of an ingestion job",
)
def job_status(
    job_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> JobStatusResponse:
    """Return the job's status; clients poll until completed or failed."""
    job = ingestion_jobs.get_status(db, job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found",
        )

    project = db.query(Project).filter(Project.id == job.project_id).first()
    if project is None or project.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view this job",
        )

    return _job_to_response(job)
