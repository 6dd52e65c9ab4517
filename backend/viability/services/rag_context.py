"""RAG Context Assembler — turn retrieved chunks into a prompt-ready block.

Reads only from the vector store; it never looks at ingestion job state,
so a project with a failed job but stored chunks still gets context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from ..constants import NO_MARKET_DATA_MARKER, REPORT_RAG_TOP_K
from . import vector_store
from .vector_store import RetrievedChunk

logger = logging.getLogger(__name__)


@dataclass
class RagContext:
    has_data: bool
    text: str
    chunks: List[RetrievedChunk] = field(default_factory=list)
    sources: List[Dict[str, str]] = field(default_factory=list)


def _no_data() -> RagContext:
    return RagContext(has_data=False, text=NO_MARKET_DATA_MARKER)


def format_chunks(chunks: List[RetrievedChunk]) -> str:
    """Render chunks as labelled ``[Source i: title or url]`` blocks."""
    blocks = []
    for i, chunk in enumerate(chunks, start=1):
        label = chunk.title or chunk.source_url
        blocks.append(f"[Source {i}: {label}]\n{chunk.content}\n")
    return "\n".join(blocks)


def unique_sources(chunks: List[RetrievedChunk]) -> List[Dict[str, str]]:
    seen: set[str] = set()
    sources: List[Dict[str, str]] = []
    for chunk in chunks:
        if chunk.source_url in seen:
            continue
        seen.add(chunk.source_url)
        sources.append({"url": chunk.source_url, "title": chunk.title or chunk.source_url})
    return sources


async def build_rag_context(
    project_id: str,
    query: str,
    top_k: int = REPORT_RAG_TOP_K,
) -> RagContext:
    """Retrieve the top_k chunks for *query* and format them for a prompt.

    Returns the explicit no-data marker when the project has no stored
    chunks or retrieval comes back empty.
    """
    project_id = str(project_id)
    if not vector_store.has_ingested_documents(project_id):
        print(f"📭 [RAG] No ingested documents for project {project_id}")
        return _no_data()

    chunks = (await vector_store.search(project_id, query, top_k))[:top_k]
    if not chunks:
        return _no_data()

    print(f"📚 [RAG] {len(chunks)} chunks in context for project {project_id}")
    return RagContext(
        has_data=True,
        text=format_chunks(chunks),
        chunks=chunks,
        sources=unique_sources(chunks),
    )
