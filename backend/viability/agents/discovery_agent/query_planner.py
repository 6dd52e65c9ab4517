"""Query Planner — turn a business idea into 5-7 web search queries."""

from __future__ import annotations

import logging
from typing import Any, List

from ...constants import MAX_SEARCH_QUERIES, MIN_BUSINESS_IDEA_CHARS, MIN_SEARCH_QUERIES
from ...exceptions import GenerationFailure, ValidationFailure
from ...services.openai_client import call_openai_json_async
from .prompts import QUERY_PLANNER_SYSTEM_PROMPT, build_query_planner_prompt

logger = logging.getLogger(__name__)

_PLANNER_TEMPERATURE = 0.7
_PLANNER_MAX_TOKENS = 800


def extract_queries(parsed: Any) -> List[str]:
    """Pull the query list out of any accepted response shape.

    Accepts a bare array, ``{"queries": [...]}`` or ``{"searchQueries": [...]}``.
    """
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        raw = parsed.get("queries") or parsed.get("searchQueries") or []
        return raw if isinstance(raw, list) else []
    return []


def clean_queries(raw: List[Any]) -> List[str]:
    """Strip, drop empties and case-insensitive duplicates, cap at 7."""
    seen: set[str] = set()
    queries: List[str] = []
    for item in raw:
        if not isinstance(item, str):
            continue
        query = " ".join(item.split())
        if not query or query.lower() in seen:
            continue
        seen.add(query.lower())
        queries.append(query)
    return queries[:MAX_SEARCH_QUERIES]


async def plan_search_queries(business_idea: str) -> List[str]:
    """Return 5-7 distinct search queries for *business_idea*.

    Raises ValidationFailure for a blank/short idea and GenerationFailure
    when the model does not yield at least 5 usable queries.
    """
    idea = (business_idea or "").strip()
    if len(idea) < MIN_BUSINESS_IDEA_CHARS:
        raise ValidationFailure(
            f"Business idea must be at least {MIN_BUSINESS_IDEA_CHARS} characters"
        )

    messages = [
        {"role": "system", "content": QUERY_PLANNER_SYSTEM_PROMPT},
        {"role": "user", "content": build_query_planner_prompt(idea)},
    ]

    try:
        parsed = await call_openai_json_async(
            messages=messages,
            temperature=_PLANNER_TEMPERATURE,
            max_completion_tokens=_PLANNER_MAX_TOKENS,
        )
    except EnvironmentError as exc:
        raise GenerationFailure(f"Query generation unavailable: {exc}") from exc

    if parsed is None:
        raise GenerationFailure("No response from the model for query generation")

    queries = clean_queries(extract_queries(parsed))
    if len(queries) < MIN_SEARCH_QUERIES:
        logger.warning("Planner returned %d usable queries: %r", len(queries), queries)
        raise GenerationFailure(
            f"Expected at least {MIN_SEARCH_QUERIES} search queries, got {len(queries)}"
        )

    print(f"🧭 [DISCOVERY] Generated {len(queries)} queries")
    return queries
