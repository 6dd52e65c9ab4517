"""Ingestion Worker — extract, chunk, embed and store each confirmed URL.

Runs out of process (Celery). One job is processed by exactly one worker:
the job row is claimed with a token before any write, and every later
status change is conditional on that token.

Per URL, strictly in order:
  extract → skip if < 100 chars → chunk → embed (batches ≤ 100) → store

A URL's chunks are written only after all of its batches embedded, so a
URL that fails part-way contributes nothing and chunk_index stays
contiguous. Failures inside one URL are logged and skipped; anything that
escapes the loop fails the whole job.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, List

from pydantic import ValidationError

from ..constants import INGESTION_URL_DELAY_SECONDS, MIN_CONTENT_CHARS
from ..database import SessionLocal
from ..exceptions import JobFailure, PerSourceFailure
from ..schemas.discovery_schema import DiscoveredUrl
from ..schemas.ingestion_schema import IngestionEvent
from ..services import vector_store
from ..services.chunker import chunk_text
from ..services.content_extractor import extract_content
from ..services.embeddings import generate_embeddings
from ..services.ingestion_jobs import claim_job, mark_completed, mark_failed
from ..services.vector_store import ChunkRecord

logger = logging.getLogger(__name__)


async def ingest_url(event: IngestionEvent, source: DiscoveredUrl) -> int:
    """Run the per-URL pipeline and return the number of chunks stored."""
    content = await extract_content(source.url)
    if len(content) < MIN_CONTENT_CHARS:
        print(f"⚠️  [WORKER] Skipping {source.url}: insufficient content ({len(content)} chars)")
        return 0

    chunks = chunk_text(content)
    if not chunks:
        print(f"⚠️  [WORKER] Skipping {source.url}: no chunks")
        return 0
    print(f"✂️  [WORKER] {len(chunks)} chunks from {source.url}")

    embeddings = await generate_embeddings(chunks)

    records: List[ChunkRecord] = [
        ChunkRecord(
            project_id=event.project_id,
            source_url=source.url,
            chunk_index=index,
            content=chunk,
            embedding=embedding,
            title=source.title,
            category=source.category,
            relevance_score=source.relevance_score,
            reason=source.reason,
            snippet=source.snippet or "",
            job_id=event.job_id,
        )
        for index, (chunk, embedding) in enumerate(zip(chunks, embeddings))
    ]
    return vector_store.store_chunks(records)


async def run_ingestion_job(
    event: Dict[str, Any],
    session_factory=SessionLocal,
    url_delay_seconds: float = INGESTION_URL_DELAY_SECONDS,
) -> int:
    """Process one ingestion payload end to end. Returns total chunks stored.

    Raises JobFailure if an error escapes the per-URL boundary; the job is
    marked failed before the exception propagates.
    """
    job_id = str(event.get("jobId") or event.get("job_id") or "")
    db = session_factory()
    token = uuid.uuid4().hex
    claimed = False

    try:
        payload = IngestionEvent.model_validate(event)
        job_id = payload.job_id

        claimed = claim_job(db, job_id, token)
        if not claimed:
            logger.warning("Job %s already claimed or finished; skipping", job_id)
            return 0

        print(f"🚀 [WORKER] Job {job_id}: {len(payload.urls)} URLs")
        total_chunks = 0

        for i, source in enumerate(payload.urls):
            if i > 0 and url_delay_seconds > 0:
                await asyncio.sleep(url_delay_seconds)
            try:
                stored = await ingest_url(payload, source)
            except Exception as exc:
                failure = exc if isinstance(exc, PerSourceFailure) else PerSourceFailure(source.url, str(exc))
                logger.warning("Skipping source: %s", failure)
                continue
            total_chunks += stored
            print(f"✅ [WORKER] {source.url}: {stored} chunks")

        if not mark_completed(db, job_id, total_chunks, claim_token=token):
            logger.warning("Job %s left processing before completion; result not recorded", job_id)
        print(f"🏁 [WORKER] Job {job_id} completed: {total_chunks} chunks")
        return total_chunks

    except Exception as exc:
        reason = "Invalid ingestion payload" if isinstance(exc, ValidationError) else (str(exc) or type(exc).__name__)
        logger.error("Job %s failed: %s", job_id, reason)
        db.rollback()
        if job_id:
            try:
                if claimed:
                    mark_failed(db, job_id, reason, claim_token=token)
                else:
                    # Never fail a job another worker holds.
                    mark_failed(db, job_id, reason, unclaimed_only=True)
            except Exception as mark_exc:
                logger.error("Could not record failure for job %s: %s", job_id, mark_exc)
        raise JobFailure(job_id, reason, exc) from exc

    finally:
        db.close()
