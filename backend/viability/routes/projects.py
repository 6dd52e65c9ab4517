"""Project RAG routes — ingestion summary, viability report and market-research Q&A.

Endpoints:
  GET  /projects/{project_id}/rag-status — Latest job + stored chunk count
  POST /projects/{project_id}/viability  — Generate a viability report grounded in ingested sources
  POST /projects/{project_id}/chat       — Ask a question grounded in ingested sources
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..agents.report_agent.generator import generate_viability_report
from ..database import get_db
from ..exceptions import GenerationFailure
from ..models.project import Project
from ..models.user import User
from ..schemas.chat_schema import ChatRequest, ChatResponse
from ..schemas.ingestion_schema import RagStatusResponse
from ..schemas.report_schema import ViabilityRequest, ViabilityResponse
from ..services.auth_dependency import get_current_user
from ..services.chat_service import answer_project_question
from ..services.ingestion_jobs import get_ingestion_summary

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/projects",
    tags=["Projects"],
)


def _get_owned_project(db: Session, project_id: UUID, user: User) -> Project:
    project = (
        db.query(Project)
        .filter(Project.id == project_id, Project.user_id == user.id)
        .first()
    )
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project {project_id} not found",
        )
    return project


@router.get(
    "/{project_id}/rag-status",
    response_model=RagStatusResponse,
    summary="Market Research Status",
)
def rag_status(
    project_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> RagStatusResponse:
    project = _get_owned_project(db, project_id, current_user)
    return RagStatusResponse(**get_ingestion_summary(db, project.id))


@router.post(
    "/{project_id}/chat",
    response_model=ChatResponse,
    summary="Ask About Project",
    response_description="Answer grounded in the project's ingested market research",
)
async def project_chat(
    project_id: UUID,
    body: ChatRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ChatResponse:
    """Answer a question using the project's ingested sources.

    Works without ingested data too; ``hasRagData`` is then false and the
    answer says it relies on general knowledge.
    """
    project = _get_owned_project(db, project_id, current_user)
    print(f"💬 [CHAT] Question for project {project_id}: {body.question[:80]}...")

    result = await answer_project_question(
        project_id=str(project.id),
        question=body.question,
        project_title=project.title,
    )
    return ChatResponse(**result)


@router.post(
    "/{project_id}/viability",
    response_model=ViabilityResponse,
    summary="Generate Viability Report",
    response_description="Viability report grounded in the project's ingested market research",
)
async def viability_report(
    project_id: UUID,
    body: ViabilityRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ViabilityResponse:
    """Generate a viability report for the project's idea.

    Without ingested sources the report is still produced, with lowered
    confidence, and ``hasRagData`` is false.
    """
    project = _get_owned_project(db, project_id, current_user)

    try:
        result = await generate_viability_report(
            project_id=str(project.id),
            idea=body.idea,
            target_market=body.target_market,
            budget_usd=body.budget_usd,
            timeline_months=body.timeline_months,
        )
    except GenerationFailure as exc:
        logger.error("Viability report failed for project %s: %s", project_id, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Report generation failed: {exc}",
        )

    return ViabilityResponse(
        report=result.report,
        has_rag_data=result.has_rag_data,
        sources=result.sources,
    )
