from .brave_search import aggregate_search_results
from .content_extractor import extract_content
from .chunker import chunk_text
from .embeddings import generate_embeddings
from .rag_context import build_rag_context
from .chat_service import answer_project_question
from .ingestion_jobs import create_job, get_status, get_ingestion_summary

__all__ = [
    "aggregate_search_results",
    "extract_content",
    "chunk_text",
    "generate_embeddings",
    "build_rag_context",
    "answer_project_question",
    "create_job",
    "get_status",
    "get_ingestion_summary",
]
