"""Pydantic schemas for URL discovery — search results, ranked URLs, API I/O."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field, field_validator

from .base import CamelModel


SourceCategory = Literal["competitor", "market_report", "industry_news"]


class SearchResult(CamelModel):
    """One web search hit as returned by the search provider."""

    title: str = Field(default="", description="Page title")
    url: str = Field(..., min_length=1, description="Absolute result URL")
    description: str = Field(default="", description="Provider snippet")


class DiscoveredUrl(CamelModel):
    """A ranked, categorised source proposed for ingestion.

    Produced by the Relevance Ranker and held client-side until the user
    confirms a subset. Never persisted on its own; its fields are copied into
    chunk metadata by the ingestion worker.
    """

    url: str = Field(..., description="Absolute http(s) URL")
    title: str = Field(default="", max_length=500, description="Page title")
    category: SourceCategory = Field(..., description="Exactly one source category")
    relevance_score: float = Field(..., ge=0.0, le=1.0, description="Comparative relevance in [0, 1]")
    reason: str = Field(default="", description="Why this source matters for the idea")
    snippet: Optional[str] = Field(default=None, description="Key information from the search description")

    @field_validator("url")
    @classmethod
    def url_is_http(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped.lower().startswith(("http://", "https://")):
            raise ValueError("url must be an absolute http(s) URL")
        return stripped


class RankedUrlList(CamelModel):
    """Schema the ranking LLM response must satisfy as a whole."""

    urls: List[DiscoveredUrl]


class DiscoveryRequest(CamelModel):
    business_idea: str = Field(
        ...,
        min_length=10,
        max_length=5000,
        description="Natural-language description of the business idea",
    )

    @field_validator("business_idea")
    @classmethod
    def idea_not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if len(stripped) < 10:
            raise ValueError("businessIdea must contain at least 10 non-blank characters")
        return stripped


class DiscoveryMetadata(CamelModel):
    queries_generated: int = Field(..., ge=0)
    total_search_results: int = Field(..., ge=0)
    filtered_urls: int = Field(..., ge=0)


class DiscoveryResponse(CamelModel):
    urls: List[DiscoveredUrl] = Field(default_factory=list)
    metadata: DiscoveryMetadata
