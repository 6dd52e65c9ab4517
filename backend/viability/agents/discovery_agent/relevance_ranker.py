"""Relevance Filter/Ranker — pick and score the best sources for ingestion.

The ranking response is validated as a whole: one malformed entry rejects
the batch. Surviving entries are restricted to URLs that were actually in
the search results, deduplicated, sorted by score and capped at 15.
"""

from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError

from ...constants import MAX_RANKED_URLS, MAX_RANKING_CANDIDATES, MIN_RANKED_URLS
from ...exceptions import GenerationFailure
from ...schemas.discovery_schema import DiscoveredUrl, RankedUrlList, SearchResult
from ...services.openai_client import call_openai_json_async
from .prompts import RANKER_SYSTEM_PROMPT, build_ranker_prompt

logger = logging.getLogger(__name__)

_RANKER_TEMPERATURE = 0.3
_RANKER_MAX_TOKENS = 4000


def select_ranked_urls(
    ranked: List[DiscoveredUrl],
    candidates: List[SearchResult],
) -> List[DiscoveredUrl]:
    """Drop URLs not among *candidates* and duplicates, then sort and cap."""
    allowed = {c.url.strip() for c in candidates}
    seen: set[str] = set()
    kept: List[DiscoveredUrl] = []
    for entry in ranked:
        if entry.url not in allowed:
            logger.info("Ranker returned unknown URL, dropping: %s", entry.url)
            continue
        if entry.url in seen:
            continue
        seen.add(entry.url)
        kept.append(entry)

    kept.sort(key=lambda entry: entry.relevance_score, reverse=True)
    return kept[:MAX_RANKED_URLS]


async def rank_search_results(
    business_idea: str,
    results: List[SearchResult],
) -> List[DiscoveredUrl]:
    """Return 10-15 ranked sources (fewer only when fewer candidates exist)."""
    if not results:
        raise GenerationFailure("No search results to rank")

    candidates = results[:MAX_RANKING_CANDIDATES]
    messages = [
        {"role": "system", "content": RANKER_SYSTEM_PROMPT},
        {"role": "user", "content": build_ranker_prompt(business_idea, candidates)},
    ]

    try:
        parsed = await call_openai_json_async(
            messages=messages,
            temperature=_RANKER_TEMPERATURE,
            max_completion_tokens=_RANKER_MAX_TOKENS,
        )
    except EnvironmentError as exc:
        raise GenerationFailure(f"URL ranking unavailable: {exc}") from exc

    if parsed is None:
        raise GenerationFailure("No response from the model for URL ranking")

    try:
        ranked = RankedUrlList.model_validate(parsed)
    except ValidationError as exc:
        logger.warning("Ranker response failed validation: %s", exc)
        raise GenerationFailure(f"Ranking response failed validation: {exc.error_count()} error(s)") from exc

    selected = select_ranked_urls(ranked.urls, candidates)
    required = min(MIN_RANKED_URLS, len(candidates))
    if len(selected) < required:
        raise GenerationFailure(
            f"Expected at least {required} ranked URLs, got {len(selected)}"
        )

    print(f"🏅 [DISCOVERY] Ranked {len(selected)} URLs from {len(candidates)} candidates")
    return selected
