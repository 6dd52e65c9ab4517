"""Split extracted documents into overlapping, boundary-aware chunks.

Token counts are approximated as characters / 4. A window is cut at the
last sentence end (". ") or newline when that boundary lies past the
window's midpoint; otherwise it is cut hard at the window size.
"""

from __future__ import annotations

import logging
from typing import List

from ..constants import (
    CHARS_PER_TOKEN,
    CHUNK_OVERLAP_TOKENS,
    CHUNK_SIZE_TOKENS,
    MAX_CHUNKS_PER_DOCUMENT,
    MIN_CHUNK_CHARS,
)

logger = logging.getLogger(__name__)


def chunk_text(
    text: str,
    max_tokens: int = CHUNK_SIZE_TOKENS,
    overlap_tokens: int = CHUNK_OVERLAP_TOKENS,
) -> List[str]:
    """Return ordered chunks of *text*; chunks under 50 chars are dropped."""
    if not text:
        return []

    max_chars = max_tokens * CHARS_PER_TOKEN
    overlap_chars = overlap_tokens * CHARS_PER_TOKEN

    chunks: List[str] = []
    start = 0

    while start < len(text):
        if len(chunks) >= MAX_CHUNKS_PER_DOCUMENT:
            logger.warning(
                "Document truncated at %d chunks; %d of %d chars not chunked",
                MAX_CHUNKS_PER_DOCUMENT,
                len(text) - start,
                len(text),
            )
            break

        end = start + max_chars
        chunk = text[start:end]

        if end < len(text):
            break_point = max(chunk.rfind(". "), chunk.rfind("\n"))
            if break_point > max_chars * 0.5:
                chunk = text[start : start + break_point + 1]

        stripped = chunk.strip()
        if stripped:
            chunks.append(stripped)

        if end >= len(text):
            break

        # Never step backwards, even if overlap >= the snapped chunk length.
        advance = len(chunk) - overlap_chars
        start += advance if advance > 0 else len(chunk)

    return [c for c in chunks if len(c) >= MIN_CHUNK_CHARS]
