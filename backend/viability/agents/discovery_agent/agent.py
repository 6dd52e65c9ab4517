"""Discovery Agent — business idea → reviewable list of ranked source URLs.

Pipeline (synchronous, user-facing):
  1. Query Planner        5-7 search queries
  2. Search Aggregator    Brave results, deduplicated by URL
  3. Relevance Ranker     10-15 categorised, scored URLs

Nothing here is persisted; the caller shows the list to the user, who
picks the subset to ingest.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List

from ...schemas.discovery_schema import DiscoveredUrl, DiscoveryMetadata
from ...services.brave_search import aggregate_search_results
from .query_planner import plan_search_queries
from .relevance_ranker import rank_search_results

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryResult:
    urls: List[DiscoveredUrl] = field(default_factory=list)
    queries: List[str] = field(default_factory=list)
    total_search_results: int = 0

    @property
    def metadata(self) -> DiscoveryMetadata:
        return DiscoveryMetadata(
            queries_generated=len(self.queries),
            total_search_results=self.total_search_results,
            filtered_urls=len(self.urls),
        )


async def discover_urls(business_idea: str) -> DiscoveryResult:
    """Run planner → search → ranker. Raises ValidationFailure / GenerationFailure."""
    t0 = time.time()

    print("🧭 [DISCOVERY] Step 1: Generating search queries...")
    queries = await plan_search_queries(business_idea)

    print("🔎 [DISCOVERY] Step 2: Searching the web...")
    results = await aggregate_search_results(queries)
    print(f"🔎 [DISCOVERY] Found {len(results)} unique results")

    print("🏅 [DISCOVERY] Step 3: Filtering and ranking URLs...")
    urls = await rank_search_results(business_idea.strip(), results)

    print(f"✅ [DISCOVERY] {len(urls)} URLs in {time.time() - t0:.1f}s")
    return DiscoveryResult(urls=urls, queries=queries, total_search_results=len(results))
