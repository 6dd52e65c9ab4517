"""Project Q&A Service — answer questions from a project's market research.

Flow:
  1. Build RAG context for the question (top_k=10)
  2. Call the chat model with the context, or an explicit "no data" note
  3. Return answer + up to 5 unique sources

LLM Config:
  - model: OPENAI_CHAT_MODEL (gpt-4o-mini)
  - temperature: 0.3
  - max_tokens: 1000
  - NO json mode
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from ..constants import CHAT_MAX_SOURCES, CHAT_RAG_TOP_K
from .openai_client import call_openai_text_async
from .rag_context import RagContext, build_rag_context

logger = logging.getLogger(__name__)

_CHAT_TEMPERATURE = 0.3
_CHAT_MAX_TOKENS = 1000

_FALLBACK_ANSWER = "Sorry, I encountered an error processing your question. Please try again."

_SYSTEM_PROMPT = (
    "You are a business analyst helping a founder assess the viability of their idea. "
    "Answer using the market research provided below. Cite sources by their [Source N] "
    "label when you rely on them. Be specific and give actionable advice. "
    "If the research does not cover the question, say so plainly and fall back to "
    "general knowledge with lower confidence. Do not invent numbers or facts."
)


def _build_messages(question: str, project_title: str, context: RagContext) -> list[dict[str, str]]:
    if context.has_data:
        research = f"MARKET RESEARCH:\n{context.text}"
    else:
        research = f"NOTE: {context.text}"
    user_content = (
        f"PROJECT: {project_title or 'Untitled project'}\n\n"
        f"{research}\n\n"
        f"QUESTION: {question}"
    )
    return [
        {"role": "system", "content": _SYSTEM_PROMPT},
        {"role": "user", "content": user_content},
    ]


async def answer_project_question(
    project_id: str,
    question: str,
    project_title: str = "",
) -> Dict[str, Any]:
    """Answer *question* for a project. Never raises for LLM or retrieval errors.

    Returns:
        {"answer": str, "has_rag_data": bool, "sources": list[{"url", "title"}]}
    """
    try:
        context = await build_rag_context(str(project_id), question, top_k=CHAT_RAG_TOP_K)
    except Exception as exc:
        logger.error("[CHAT] Retrieval failed for project %s: %s", project_id, exc)
        return {"answer": _FALLBACK_ANSWER, "has_rag_data": False, "sources": []}

    sources = context.sources[:CHAT_MAX_SOURCES]

    try:
        answer = await call_openai_text_async(
            messages=_build_messages(question, project_title, context),
            temperature=_CHAT_TEMPERATURE,
            max_completion_tokens=_CHAT_MAX_TOKENS,
        )
    except EnvironmentError as exc:
        logger.error("[CHAT] OpenAI not configured: %s", exc)
        answer = None

    if not answer:
        return {"answer": _FALLBACK_ANSWER, "has_rag_data": context.has_data, "sources": sources}

    print(f"💬 [CHAT] Answered question for project {project_id} ({len(answer)} chars)")
    return {"answer": answer, "has_rag_data": context.has_data, "sources": sources}
