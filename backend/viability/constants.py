"""Centralized constants shared by the discovery, ingestion and RAG layers.

This module is the SINGLE SOURCE OF TRUTH for job statuses and
pipeline tunables. Reused by:
  - Discovery Agent (query planner, relevance ranker)
  - Ingestion Worker (chunker, embeddings, vector store)
  - Routes (request validation, status responses)

Tunables read the environment once at import time with safe defaults.
"""

from __future__ import annotations

import os


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


# ── Ingestion job lifecycle ─────────────────────────────────────────────
JOB_PENDING = "pending"
JOB_PROCESSING = "processing"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"

TERMINAL_JOB_STATUSES: frozenset[str] = frozenset({JOB_COMPLETED, JOB_FAILED})

# Polling cadence suggested to clients (seconds).
JOB_POLL_INTERVAL_SECONDS: float = 3.0

# Jobs stuck in pending/processing longer than this are failed by the watchdog.
INGESTION_JOB_TIMEOUT_MINUTES: int = _env_int("INGESTION_JOB_TIMEOUT_MINUTES", 30)

# ── Discovery ───────────────────────────────────────────────────────────
MIN_BUSINESS_IDEA_CHARS: int = 10
MIN_SEARCH_QUERIES: int = 5
MAX_SEARCH_QUERIES: int = 7
RESULTS_PER_QUERY: int = 5
SEARCH_QUERY_DELAY_SECONDS: float = _env_float("SEARCH_QUERY_DELAY_SECONDS", 0.2)
MAX_RANKING_CANDIDATES: int = 100
MIN_RANKED_URLS: int = 10
MAX_RANKED_URLS: int = 15

# ── Extraction ──────────────────────────────────────────────────────────
FETCH_TIMEOUT_SECONDS: float = _env_float("FETCH_TIMEOUT_SECONDS", 10.0)
MIN_CONTENT_CHARS: int = 100
USER_AGENT: str = "Mozilla/5.0 (compatible; BizViabilityBot/1.0)"

# ── Chunking ────────────────────────────────────────────────────────────
# Token counts are approximated as characters / 4 for English text.
CHARS_PER_TOKEN: int = 4
CHUNK_SIZE_TOKENS: int = 1000
CHUNK_OVERLAP_TOKENS: int = 200
MIN_CHUNK_CHARS: int = 50
MAX_CHUNKS_PER_DOCUMENT: int = 1000

# ── Embeddings ──────────────────────────────────────────────────────────
# Query and corpus vectors MUST come from this model; see vector_store.py.
EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small").strip()
EMBEDDING_DIMENSIONS: int = _env_int("EMBEDDING_DIMENSIONS", 1536)
EMBEDDING_BATCH_SIZE: int = min(_env_int("EMBEDDING_BATCH_SIZE", 100), 100)

# ── Worker ──────────────────────────────────────────────────────────────
INGESTION_TASK_NAME: str = os.getenv("INGESTION_TASK_NAME", "ingestion.run_job")
INGESTION_URL_DELAY_SECONDS: float = _env_float("INGESTION_URL_DELAY_SECONDS", 0.5)

# ── RAG ─────────────────────────────────────────────────────────────────
REPORT_RAG_TOP_K: int = 5
CHAT_RAG_TOP_K: int = 10
CHAT_MAX_SOURCES: int = 5
NO_MARKET_DATA_MARKER: str = (
    "No market research data is available for this project. "
    "Base the analysis on general knowledge and state lower confidence accordingly."
)
