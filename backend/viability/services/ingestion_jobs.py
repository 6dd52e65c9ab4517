"""Ingestion Job Orchestrator — create, dispatch and track ingestion jobs.

Status lifecycle (monotonic):

    pending ──► processing ──► completed
       │             │
       └─────────────┴──────► failed

Every transition is a conditional UPDATE guarded by the allowed
predecessor statuses, so a late writer (a slow worker, the watchdog, a
duplicate delivery) can never move a terminal job backwards.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..constants import (
    INGESTION_JOB_TIMEOUT_MINUTES,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PENDING,
    JOB_PROCESSING,
    TERMINAL_JOB_STATUSES,
)
from ..exceptions import DispatchFailure, ValidationFailure
from ..models.ingestion_job import IngestionJob
from ..schemas.discovery_schema import DiscoveredUrl
from ..schemas.ingestion_schema import IngestionEvent
from . import vector_store
from .job_dispatcher import dispatch_ingestion

logger = logging.getLogger(__name__)

_ACTIVE_STATUSES = (JOB_PENDING, JOB_PROCESSING)
STALE_JOB_MESSAGE = "Ingestion timed out"


# ---------------------------------------------------------------------------
# Conditional transitions
# ---------------------------------------------------------------------------

def _transition(
    db: Session,
    job_id: Any,
    from_statuses: Iterable[str],
    *,
    claim_token: Optional[str] = None,
    unclaimed_only: bool = False,
    **values: Any,
) -> bool:
    """Apply *values* only if the job is in one of *from_statuses*.

    When *claim_token* is given the job must also be owned by that worker;
    with *unclaimed_only* no worker may own it. Returns True if the row was
    updated.
    """
    query = db.query(IngestionJob).filter(
        IngestionJob.id == job_id,
        IngestionJob.status.in_(list(from_statuses)),
    )
    if claim_token is not None:
        query = query.filter(IngestionJob.claimed_by == claim_token)
    elif unclaimed_only:
        query = query.filter(IngestionJob.claimed_by.is_(None))

    values.setdefault("updated_at", datetime.utcnow())
    updated = query.update(values, synchronize_session=False)
    db.commit()
    return updated == 1


def claim_job(db: Session, job_id: Any, token: str) -> bool:
    """Take single-writer ownership of a job that is not yet claimed or terminal."""
    updated = (
        db.query(IngestionJob)
        .filter(
            IngestionJob.id == job_id,
            IngestionJob.claimed_by.is_(None),
            IngestionJob.status.notin_(list(TERMINAL_JOB_STATUSES)),
        )
        .update(
            {
                "claimed_by": token,
                "status": JOB_PROCESSING,
                "updated_at": datetime.utcnow(),
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return updated == 1


def mark_processing(db: Session, job_id: Any) -> bool:
    return _transition(db, job_id, (JOB_PENDING,), status=JOB_PROCESSING)


def mark_completed(
    db: Session,
    job_id: Any,
    chunks_count: int,
    claim_token: Optional[str] = None,
) -> bool:
    return _transition(
        db,
        job_id,
        (JOB_PROCESSING,),
        claim_token=claim_token,
        status=JOB_COMPLETED,
        chunks_count=chunks_count,
        completed_at=datetime.utcnow(),
        error_message=None,
    )


def mark_failed(
    db: Session,
    job_id: Any,
    error_message: str,
    claim_token: Optional[str] = None,
    from_statuses: Iterable[str] = _ACTIVE_STATUSES,
    unclaimed_only: bool = False,
) -> bool:
    return _transition(
        db,
        job_id,
        from_statuses,
        claim_token=claim_token,
        unclaimed_only=unclaimed_only,
        status=JOB_FAILED,
        error_message=(error_message or "Unknown error")[:2000],
        completed_at=datetime.utcnow(),
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def create_job(
    db: Session,
    project_id: Any,
    user_id: Any,
    urls: List[DiscoveredUrl],
    dispatch: Optional[Callable[[Dict[str, Any]], Any]] = None,
) -> IngestionJob:
    """Persist a pending job, hand it to the worker and return immediately.

    On dispatch failure the job is left behind as a ``failed`` record and
    DispatchFailure is raised.
    """
    if not urls:
        raise ValidationFailure("At least one URL is required for ingestion")

    dispatch = dispatch or dispatch_ingestion

    job = IngestionJob(project_id=project_id, status=JOB_PENDING, url_count=len(urls))
    db.add(job)
    db.commit()
    db.refresh(job)
    print(f"📝 [JOBS] Created job {job.id} for project {project_id} ({len(urls)} URLs)")

    event = IngestionEvent(
        job_id=str(job.id),
        project_id=str(project_id),
        user_id=str(user_id),
        urls=urls,
    )
    payload = event.model_dump(by_alias=True, mode="json")

    try:
        dispatch(payload)
    except Exception as exc:
        logger.error("Dispatch failed for job %s: %s", job.id, exc)
        mark_failed(
            db,
            job.id,
            f"Failed to start ingestion: {exc}",
            from_statuses=(JOB_PENDING,),
        )
        raise DispatchFailure(str(job.id), str(exc)) from exc

    # The worker may already have claimed the job; then this is a no-op.
    mark_processing(db, job.id)
    db.refresh(job)
    return job


def fail_stale_jobs(
    db: Session,
    timeout_minutes: int = INGESTION_JOB_TIMEOUT_MINUTES,
    job_id: Any = None,
    now: Optional[datetime] = None,
) -> int:
    """Fail jobs stuck in pending/processing for longer than *timeout_minutes*.

    Age counts from the last status change, so a job that waited in the
    broker queue gets the full timeout once a worker claims it.

    Restricted to a single job when *job_id* is given. Returns the number of
    jobs failed.
    """
    cutoff = (now or datetime.utcnow()) - timedelta(minutes=timeout_minutes)
    query = db.query(IngestionJob).filter(
        IngestionJob.status.in_(list(_ACTIVE_STATUSES)),
        func.coalesce(IngestionJob.updated_at, IngestionJob.created_at) < cutoff,
    )
    if job_id is not None:
        query = query.filter(IngestionJob.id == job_id)

    stamp = datetime.utcnow()
    updated = query.update(
        {
            "status": JOB_FAILED,
            "error_message": STALE_JOB_MESSAGE,
            "completed_at": stamp,
            "updated_at": stamp,
        },
        synchronize_session=False,
    )
    db.commit()
    if updated:
        logger.warning("Watchdog failed %d stale ingestion job(s)", updated)
    return updated


def get_status(db: Session, job_id: Any) -> Optional[IngestionJob]:
    """Return the job for polling, failing it first if it has gone stale."""
    fail_stale_jobs(db, job_id=job_id)
    return db.query(IngestionJob).filter(IngestionJob.id == job_id).first()


def get_ingestion_summary(db: Session, project_id: Any) -> Dict[str, Any]:
    """Latest job status plus the number of chunks stored for a project."""
    job = (
        db.query(IngestionJob)
        .filter(IngestionJob.project_id == project_id)
        .order_by(IngestionJob.created_at.desc())
        .first()
    )
    if job is not None and job.status in _ACTIVE_STATUSES:
        fail_stale_jobs(db, job_id=job.id)
        db.refresh(job)

    return {
        "project_id": str(project_id),
        "has_job": job is not None,
        "status": job.status if job is not None else None,
        "chunks_count": vector_store.count_chunks(str(project_id)),
        "last_job_at": job.created_at if job is not None else None,
    }
