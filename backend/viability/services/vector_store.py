"""Vector Store Service — ChromaDB persistent storage for market research chunks.

Handles:
  - ChromaDB client initialization (persistent mode)
  - One cosine collection per embedding model (<prefix>_<model>)
  - Appending chunks with metadata (project_id, source_url, chunk_index, ...)
  - Project-scoped nearest-neighbour search, similarity = 1 - cosine distance

Storage: ./vector_store (configurable via CHROMADB_PERSIST_DIR)
Embeddings: OpenAI text-embedding-3-small (configurable via EMBEDDING_MODEL)

Chunks are append-only: there is no update or uniqueness check, so a URL
ingested twice yields duplicate rows.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import chromadb

from ..constants import EMBEDDING_DIMENSIONS, EMBEDDING_MODEL
from ..exceptions import EmbeddingModelMismatch
from .embeddings import embed_query

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
_PERSIST_DIR = os.getenv("CHROMADB_PERSIST_DIR", "./vector_store")
_COLLECTION_PREFIX = os.getenv("CHROMADB_COLLECTION_PREFIX", "market_research")

# ---------------------------------------------------------------------------
# Singleton ChromaDB client + per-model collections
# ---------------------------------------------------------------------------
_client: Optional[chromadb.ClientAPI] = None
_collections: Dict[str, chromadb.Collection] = {}


@dataclass
class ChunkRecord:
    """A chunk ready to be written: text, its vector and source metadata."""

    project_id: str
    source_url: str
    chunk_index: int
    content: str
    embedding: List[float]
    title: str = ""
    category: str = ""
    relevance_score: float = 0.0
    reason: str = ""
    snippet: str = ""
    job_id: str = ""
    embedding_model: str = EMBEDDING_MODEL


@dataclass
class RetrievedChunk:
    content: str
    source_url: str
    title: str
    category: str
    chunk_index: int
    similarity: float
    metadata: Dict[str, Any] = field(default_factory=dict)


def get_client() -> chromadb.ClientAPI:
    """Return the singleton ChromaDB persistent client."""
    global _client
    if _client is None:
        os.makedirs(_PERSIST_DIR, exist_ok=True)
        _client = chromadb.PersistentClient(path=_PERSIST_DIR)
        print(f"🗄️  [VECTOR] ChromaDB initialized at {_PERSIST_DIR}")
    return _client


def collection_name_for(model: str) -> str:
    """Collection name for *model*, restricted to chromadb's allowed charset."""
    slug = re.sub(r"[^a-zA-Z0-9_-]+", "_", model).strip("_-")
    return f"{_COLLECTION_PREFIX}_{slug}"


def get_collection(model: str = EMBEDDING_MODEL) -> chromadb.Collection:
    """Return the collection holding vectors of *model* (creates if missing)."""
    if model not in _collections:
        name = collection_name_for(model)
        collection = get_client().get_or_create_collection(
            name=name,
            metadata={"hnsw:space": "cosine", "embedding_model": model},
        )
        _collections[model] = collection
        print(f"🗄️  [VECTOR] Collection '{name}' ready (count={collection.count()})")
    return _collections[model]


def content_hash(project_id: str, source_url: str, chunk_index: int, content: str) -> str:
    raw = f"{project_id}\x00{source_url}\x00{chunk_index}\x00{content}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _metadata_for(chunk: ChunkRecord) -> Dict[str, Any]:
    # chromadb rejects None values; every field is a scalar.
    return {
        "project_id": chunk.project_id,
        "source_url": chunk.source_url,
        "chunk_index": int(chunk.chunk_index),
        "title": chunk.title or "",
        "category": chunk.category or "",
        "relevance_score": float(chunk.relevance_score),
        "reason": chunk.reason or "",
        "snippet": chunk.snippet or "",
        "embedding_model": chunk.embedding_model,
        "content_hash": content_hash(
            chunk.project_id, chunk.source_url, chunk.chunk_index, chunk.content
        ),
        "job_id": chunk.job_id or "",
    }


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def store_chunks(chunks: List[ChunkRecord]) -> int:
    """Append *chunks* to their model's collection. Returns the number written."""
    if not chunks:
        return 0

    by_model: Dict[str, List[ChunkRecord]] = {}
    for chunk in chunks:
        if len(chunk.embedding) != EMBEDDING_DIMENSIONS:
            raise EmbeddingModelMismatch(
                f"chunk {chunk.chunk_index} of {chunk.source_url} has a "
                f"{len(chunk.embedding)}-dim vector, expected {EMBEDDING_DIMENSIONS}"
            )
        by_model.setdefault(chunk.embedding_model, []).append(chunk)

    for model, group in by_model.items():
        get_collection(model).add(
            ids=[uuid.uuid4().hex for _ in group],
            embeddings=[c.embedding for c in group],
            documents=[c.content for c in group],
            metadatas=[_metadata_for(c) for c in group],
        )

    print(f"🗄️  [VECTOR] Stored {len(chunks)} chunks")
    return len(chunks)


def store(chunk: ChunkRecord) -> None:
    store_chunks([chunk])


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def count_chunks(project_id: str, model: str = EMBEDDING_MODEL) -> int:
    """Number of chunks stored for a project. Reads ids only."""
    results = get_collection(model).get(where={"project_id": str(project_id)}, include=[])
    return len(results["ids"]) if results and results.get("ids") else 0


def has_ingested_documents(project_id: str, model: str = EMBEDDING_MODEL) -> bool:
    """Cheap existence check: does the project have any stored chunk?"""
    results = get_collection(model).get(
        where={"project_id": str(project_id)},
        limit=1,
        include=["metadatas"],
    )
    return bool(results and results.get("ids"))


def search_by_vector(
    project_id: str,
    query_embedding: List[float],
    top_k: int,
    model: str = EMBEDDING_MODEL,
) -> List[RetrievedChunk]:
    """Rank the project's chunks against *query_embedding*, best first."""
    if len(query_embedding) != EMBEDDING_DIMENSIONS:
        raise EmbeddingModelMismatch(
            f"query vector has {len(query_embedding)} dims, corpus uses {EMBEDDING_DIMENSIONS}"
        )
    if top_k <= 0:
        return []

    # Collection-wide count is O(1); the project filter may still return fewer.
    collection = get_collection(model)
    available = collection.count()
    if available == 0:
        return []

    results = collection.query(
        query_embeddings=[query_embedding],
        n_results=min(top_k, available),
        where={"project_id": str(project_id)},
        include=["documents", "metadatas", "distances"],
    )

    items: List[RetrievedChunk] = []
    if results and results["documents"]:
        docs = results["documents"][0]
        metas = results["metadatas"][0] if results["metadatas"] else [{}] * len(docs)
        dists = results["distances"][0] if results["distances"] else [0.0] * len(docs)

        for doc, meta, dist in zip(docs, metas, dists):
            meta = meta or {}
            stored_model = meta.get("embedding_model", model)
            if stored_model != model:
                raise EmbeddingModelMismatch(
                    f"chunk embedded with {stored_model} found in {model} collection"
                )
            items.append(
                RetrievedChunk(
                    content=doc,
                    source_url=meta.get("source_url", ""),
                    title=meta.get("title", ""),
                    category=meta.get("category", ""),
                    chunk_index=int(meta.get("chunk_index", 0)),
                    similarity=1.0 - float(dist),
                    metadata=dict(meta),
                )
            )

    items.sort(key=lambda item: item.similarity, reverse=True)
    return items


async def search(project_id: str, query_text: str, top_k: int) -> List[RetrievedChunk]:
    """Embed *query_text* with the corpus model and return the top_k chunks."""
    query_embedding = await embed_query(query_text, model=EMBEDDING_MODEL)
    items = search_by_vector(str(project_id), query_embedding, top_k, EMBEDDING_MODEL)
    print(f"🔍 [VECTOR] {len(items)} chunks for project {project_id}")
    return items
