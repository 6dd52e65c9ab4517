"""Web Search Aggregator — Brave Search API.

Runs each planned query against Brave web search, one at a time with a
small delay, and merges the hits into a single URL-deduplicated list.

Rules
-----
- Sequential queries only (provider rate limits)
- A failing query yields zero results and never aborts the batch
- First occurrence of a URL wins; original order is preserved
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from ..constants import RESULTS_PER_QUERY, SEARCH_QUERY_DELAY_SECONDS
from ..schemas.discovery_schema import SearchResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Brave API configuration
# ---------------------------------------------------------------------------
_BRAVE_API_URL = "https://api.search.brave.com/res/v1/web/search"
_REQUEST_TIMEOUT = 10.0  # seconds per request
_MAX_COUNT = 20  # Brave caps count per request


def _get_brave_key() -> str:
    """Read the Brave Search API key from the environment."""
    key = os.getenv("BRAVE_SEARCH_API_KEY", "").strip()
    if not key:
        print("❌ [BRAVE] API key missing (BRAVE_SEARCH_API_KEY)")
        raise EnvironmentError("BRAVE_SEARCH_API_KEY environment variable not set")
    return key


def _parse_results(data: Dict[str, Any]) -> List[SearchResult]:
    """Turn a Brave response body into SearchResult rows, skipping URL-less hits."""
    web = data.get("web") or {}
    rows: List[SearchResult] = []
    for item in web.get("results") or []:
        url = (item.get("url") or "").strip()
        if not url:
            continue
        rows.append(
            SearchResult(
                title=(item.get("title") or "").strip(),
                url=url,
                description=(item.get("description") or "").strip(),
            )
        )
    return rows


async def search_brave(
    query: str,
    count: int = RESULTS_PER_QUERY,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> List[SearchResult]:
    """Run one Brave web search.

    Raises EnvironmentError when no key is configured and RuntimeError on a
    non-200 response; the aggregator decides what to do with failures.
    """
    api_key = _get_brave_key()
    headers = {
        "Accept": "application/json",
        "Accept-Encoding": "gzip",
        "X-Subscription-Token": api_key,
    }
    params = {
        "q": query,
        "count": str(max(1, min(count, _MAX_COUNT))),
        "text_decorations": "false",
        "search_lang": "en",
    }

    if client is None:
        async with httpx.AsyncClient(timeout=_REQUEST_TIMEOUT) as own_client:
            response = await own_client.get(_BRAVE_API_URL, headers=headers, params=params)
    else:
        response = await client.get(_BRAVE_API_URL, headers=headers, params=params)

    if response.status_code != 200:
        raise RuntimeError(f"Brave Search API error: {response.status_code} - {response.text[:200]}")

    return _parse_results(response.json())


def dedupe_by_url(results: List[SearchResult]) -> List[SearchResult]:
    """Return *results* with duplicate URLs removed, preserving first-seen order."""
    seen: set[str] = set()
    unique: List[SearchResult] = []
    for result in results:
        if result.url in seen:
            continue
        seen.add(result.url)
        unique.append(result)
    return unique


async def aggregate_search_results(
    queries: List[str],
    results_per_query: int = RESULTS_PER_QUERY,
    *,
    client: Optional[httpx.AsyncClient] = None,
    delay_seconds: float = SEARCH_QUERY_DELAY_SECONDS,
) -> List[SearchResult]:
    """Search every query sequentially and return URL-deduplicated results."""
    collected: List[SearchResult] = []
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=_REQUEST_TIMEOUT)

    try:
        for i, query in enumerate(queries):
            print(f"🔎 [BRAVE] Query {i + 1}/{len(queries)}: {query!r}")
            try:
                results = await search_brave(query, results_per_query, client=client)
            except Exception as exc:
                logger.warning("Brave search failed for query=%r: %s", query, exc)
                results = []
            print(f"📄 [BRAVE] {len(results)} results for query={query!r}")
            collected.extend(results)

            if delay_seconds > 0 and i < len(queries) - 1:
                await asyncio.sleep(delay_seconds)
    finally:
        if owns_client:
            await client.aclose()

    unique = dedupe_by_url(collected)
    print(f"📄 [BRAVE] {len(unique)} unique results from {len(collected)} hits")
    return unique
