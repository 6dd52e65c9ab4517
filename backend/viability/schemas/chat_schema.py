"""Pydantic schemas for project Q&A grounded in ingested market research."""

from __future__ import annotations

from typing import List

from pydantic import Field

from .base import CamelModel


class ChatRequest(CamelModel):
    question: str = Field(
        ...,
        min_length=3,
        max_length=1000,
        description="User question about the business idea",
    )


class ChatSource(CamelModel):
    url: str
    title: str


class ChatResponse(CamelModel):
    answer: str = Field(..., description="Answer grounded in retrieved market research")
    has_rag_data: bool = Field(..., description="True if market research chunks were used")
    sources: List[ChatSource] = Field(default_factory=list)
