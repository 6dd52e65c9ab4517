"""Embedding generator — OpenAI embeddings in batches of at most 100.

The returned list is index-aligned with the input: vectors[i] embeds
texts[i]. Every vector is checked against EMBEDDING_DIMENSIONS so a
misconfigured model can never leak vectors of the wrong width into the
store.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from openai import AsyncOpenAI

from ..constants import EMBEDDING_BATCH_SIZE, EMBEDDING_DIMENSIONS, EMBEDDING_MODEL
from ..exceptions import EmbeddingModelMismatch

logger = logging.getLogger(__name__)

_client: Optional[AsyncOpenAI] = None


def get_embedding_client() -> AsyncOpenAI:
    """Return the shared AsyncOpenAI client. Raises EnvironmentError without a key."""
    global _client
    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not api_key:
            raise EnvironmentError("OPENAI_API_KEY environment variable not set")
        _client = AsyncOpenAI(api_key=api_key)
    return _client


def _check_dimensions(vectors: List[List[float]], model: str) -> None:
    for vector in vectors:
        if len(vector) != EMBEDDING_DIMENSIONS:
            raise EmbeddingModelMismatch(
                f"{model} returned {len(vector)}-dim vectors, expected {EMBEDDING_DIMENSIONS}"
            )


async def generate_embeddings(
    texts: List[str],
    *,
    client: Optional[AsyncOpenAI] = None,
    model: str = EMBEDDING_MODEL,
    batch_size: int = EMBEDDING_BATCH_SIZE,
) -> List[List[float]]:
    """Embed *texts* in order. Any provider error propagates to the caller."""
    if not texts:
        return []

    client = client or get_embedding_client()
    batch_size = max(1, min(batch_size, 100))
    vectors: List[List[float]] = []

    for offset in range(0, len(texts), batch_size):
        batch = texts[offset : offset + batch_size]
        response = await client.embeddings.create(model=model, input=batch)
        # The API may return items out of order; sort by their index.
        ordered = sorted(response.data, key=lambda item: item.index)
        batch_vectors = [list(item.embedding) for item in ordered]
        if len(batch_vectors) != len(batch):
            raise RuntimeError(
                f"Embedding API returned {len(batch_vectors)} vectors for {len(batch)} inputs"
            )
        _check_dimensions(batch_vectors, model)
        vectors.extend(batch_vectors)

    logger.info("Embedded %d texts in %d batch(es)", len(texts), -(-len(texts) // batch_size))
    return vectors


async def embed_query(
    text: str,
    *,
    client: Optional[AsyncOpenAI] = None,
    model: str = EMBEDDING_MODEL,
) -> List[float]:
    """Embed a single retrieval query with the corpus model."""
    vectors = await generate_embeddings([text], client=client, model=model)
    return vectors[0]
