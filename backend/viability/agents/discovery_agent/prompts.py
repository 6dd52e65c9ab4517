"""Prompt templates for the Discovery Agent (query planning + URL ranking).

System + User prompt separation. Output is always valid JSON.
JSON enforcement is handled by response_format in the centralized openai_client.
"""

from __future__ import annotations

from typing import List

from ...schemas.discovery_schema import SearchResult

QUERY_PLANNER_SYSTEM_PROMPT = """You are a market research analyst planning web searches for a business idea.

OUTPUT FORMAT:
You MUST respond with a single JSON object. No markdown, no explanation, no prose.

{
  "queries": ["<search query 1>", "<search query 2>", "..."]
}

RULES:
1. Produce between 5 and 7 distinct search queries.
2. Cover all three angles:
   - Direct competitors and similar businesses
   - Market research reports and industry analysis
   - Recent industry news and trends
3. Each query is a plain web search string, 3-12 words, no operators.
4. Return ONLY the JSON object. No surrounding text."""


RANKER_SYSTEM_PROMPT = """You are a business research expert selecting sources for competitive analysis and market research.

OUTPUT FORMAT:
You MUST respond with a single JSON object. No markdown, no explanation, no prose.

{
  "urls": [
    {
      "url": "<full URL copied exactly from the search results>",
      "title": "<page title>",
      "category": "competitor" | "market_report" | "industry_news",
      "relevanceScore": <number between 0.0 and 1.0>,
      "reason": "<brief explanation of relevance>",
      "snippet": "<key information from the description>"
    }
  ]
}

CATEGORIES:
- "competitor": Direct or indirect competitors
- "market_report": Market research, industry reports, statistics
- "industry_news": News articles, trends, announcements

RULES:
1. Select the 10-15 MOST relevant URLs (fewer only if fewer results are given).
2. Only use URLs that appear in the search results. Never invent URLs.
3. Every entry MUST have exactly one of the three categories.
4. Focus on quality over quantity. Exclude generic sites, search engines, and low-value pages.
5. Return ONLY the JSON object. No surrounding text."""


def build_query_planner_prompt(business_idea: str) -> str:
    return f"""Generate 5-7 targeted web search queries to research this business idea.

BUSINESS IDEA: "{business_idea}"

Return the queries as a JSON object with a "queries" array."""


def format_search_results(results: List[SearchResult]) -> str:
    return "\n\n".join(
        f"{i + 1}. {r.title}\n   URL: {r.url}\n   Description: {r.description}"
        for i, r in enumerate(results)
    )


def build_ranker_prompt(business_idea: str, results: List[SearchResult]) -> str:
    return f"""Identify the most relevant URLs for researching this business idea.

BUSINESS IDEA: "{business_idea}"

SEARCH RESULTS:
{format_search_results(results)}

Return the selected URLs as a JSON object with a "urls" array."""
