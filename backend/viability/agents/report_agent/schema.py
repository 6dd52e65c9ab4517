"""Locked Pydantic output schema for the Viability Report Generator.

The model's JSON is validated against ViabilityReport as a whole; any
missing key or out-of-range value rejects the report.
Do NOT modify field names or types without updating the prompt.
"""

from __future__ import annotations

from typing import List, Literal

from pydantic import Field

from ...schemas.base import CamelModel


class Risk(CamelModel):
    description: str
    severity: Literal["high", "medium", "low"]
    impact: str = Field(..., description="Why this risk matters for the business")


class LaunchStep(CamelModel):
    title: str
    description: str
    duration_weeks: int = Field(..., gt=0)


class MonthlyProjection(CamelModel):
    month: int = Field(..., gt=0)
    revenue_usd: float
    cost_usd: float


class ProfitModel(CamelModel):
    cac_usd: float = Field(..., ge=0, description="Customer acquisition cost")
    ltv_usd: float = Field(..., ge=0, description="Customer lifetime value")
    gross_margin_pct: float = Field(..., ge=0, le=100)
    break_even_months: int = Field(..., ge=0)
    monthly_projection: List[MonthlyProjection]


class ViabilityReport(CamelModel):
    """The complete output of the Viability Report Generator."""

    summary: str
    market_size_usd: float = Field(..., ge=0)
    market_size_explanation: str = Field(..., description="How the market size was estimated")
    risks: List[Risk] = Field(..., max_length=10)
    steps: List[LaunchStep] = Field(..., min_length=3)
    profit_model: ProfitModel
    confidence_pct: float = Field(..., ge=0, le=100)
    confidence_reasoning: str = Field(..., description="Why this confidence score was assigned")
