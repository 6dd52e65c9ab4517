"""Viability Report Generator — one JSON-mode generation grounded in RAG context.

Flow:
  1. Build RAG context for the idea (top_k=5), or the explicit no-data marker
  2. Call the model through the centralized client (JSON mode, temperature 0.2)
  3. Validate the whole response against ViabilityReport

Unlike project Q&A, a failed generation is an error for the caller
(GenerationFailure), not a degraded answer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from pydantic import ValidationError

from ...constants import REPORT_RAG_TOP_K
from ...exceptions import GenerationFailure
from ...services.openai_client import call_openai_json_async, get_chat_model
from ...services.rag_context import build_rag_context
from .prompts import SYSTEM_PROMPT, build_report_prompt
from .schema import ViabilityReport

logger = logging.getLogger(__name__)

_REPORT_TEMPERATURE = 0.2
_REPORT_MAX_TOKENS = 4000


@dataclass
class ViabilityResult:
    report: ViabilityReport
    has_rag_data: bool
    sources: List[Dict[str, str]] = field(default_factory=list)


async def generate_viability_report(
    *,
    project_id: str,
    idea: str,
    target_market: str,
    budget_usd: float = 0,
    timeline_months: int = 6,
) -> ViabilityResult:
    """Generate a viability report for *idea* grounded in the project's sources.

    Raises
    ------
    GenerationFailure
        If OpenAI is not configured, returns nothing usable, or the JSON
        does not match ViabilityReport.
    """
    context = await build_rag_context(str(project_id), idea, top_k=REPORT_RAG_TOP_K)
    print(
        f"📊 [REPORT] Generating report for project {project_id} "
        f"({'with' if context.has_data else 'without'} market research)"
    )

    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": build_report_prompt(
                idea=idea,
                target_market=target_market,
                budget_usd=budget_usd,
                timeline_months=timeline_months,
                market_research=context.text,
                has_market_data=context.has_data,
            ),
        },
    ]

    try:
        parsed = await call_openai_json_async(
            messages=messages,
            temperature=_REPORT_TEMPERATURE,
            max_completion_tokens=_REPORT_MAX_TOKENS,
            model=get_chat_model(),
        )
    except EnvironmentError as exc:
        raise GenerationFailure(f"Report generation unavailable: {exc}") from exc

    if parsed is None:
        raise GenerationFailure("No response from the model for the viability report")

    try:
        report = ViabilityReport.model_validate(parsed)
    except ValidationError as exc:
        logger.warning("Viability report failed validation: %s", exc)
        raise GenerationFailure(
            f"Viability report failed validation: {exc.error_count()} error(s)"
        ) from exc

    print(f"✅ [REPORT] Report generated (confidence {report.confidence_pct:g}%)")
    return ViabilityResult(
        report=report,
        has_rag_data=context.has_data,
        sources=context.sources,
    )
