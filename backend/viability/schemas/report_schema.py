"""Pydantic schemas for viability report generation."""

from __future__ import annotations

from typing import List

from pydantic import Field

from ..agents.report_agent.schema import ViabilityReport
from .base import CamelModel
from .chat_schema import ChatSource


class ViabilityRequest(CamelModel):
    idea: str = Field(
        ...,
        min_length=10,
        max_length=2000,
        description="Business idea to assess",
    )
    target_market: str = Field(..., min_length=2, max_length=500)
    budget_usd: float = Field(default=0, ge=0)
    timeline_months: int = Field(default=6, gt=0)


class ViabilityResponse(CamelModel):
    report: ViabilityReport
    has_rag_data: bool = Field(..., description="True if market research chunks grounded the report")
    sources: List[ChatSource] = Field(default_factory=list)
