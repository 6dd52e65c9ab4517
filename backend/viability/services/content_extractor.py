"""Content Extractor — fetch a URL and return clean plain text.

Handles:
  - PDF payloads (content-type application/pdf or a .pdf URL) via pypdf
  - HTML/XHTML via BeautifulSoup, preferring the main content region
  - text/plain returned as-is (whitespace collapsed)
  - Anything else is parsed as HTML

Every failure (HTTP error, timeout, unparseable payload) is raised as
PerSourceFailure so the ingestion worker can skip the URL.
"""

from __future__ import annotations

import io
import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup
from pypdf import PdfReader

from ..constants import FETCH_TIMEOUT_SECONDS, USER_AGENT
from ..exceptions import PerSourceFailure

logger = logging.getLogger(__name__)

# Elements that never carry article text.
_NOISE_SELECTORS = "script, style, noscript, nav, header, footer, aside, .advertisement, .ads, #comments"

# Tried in order; the first selector that matches wins.
_MAIN_SELECTORS: tuple[str, ...] = (
    "main",
    "article",
    '[role="main"]',
    ".main-content",
    ".content",
    "#content",
    ".post-content",
    ".article-content",
)


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def extract_html_text(html: str) -> str:
    """Strip boilerplate from an HTML document and return its main text."""
    soup = BeautifulSoup(html, "html.parser")

    for element in soup.select(_NOISE_SELECTORS):
        element.decompose()

    content = ""
    for selector in _MAIN_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            content = element.get_text(separator=" ")
            break

    if not content:
        body = soup.body or soup
        content = body.get_text(separator=" ")

    return _collapse_whitespace(content)


def extract_pdf_text(raw_bytes: bytes) -> str:
    """Concatenate the text of every PDF page."""
    reader = PdfReader(io.BytesIO(raw_bytes))
    page_text: list[str] = []
    for page in reader.pages:
        text = page.extract_text() or ""
        if text:
            page_text.append(text)
    return "\n".join(page_text).strip()


def _is_pdf(url: str, content_type: str) -> bool:
    return "application/pdf" in content_type or url.lower().split("?")[0].endswith(".pdf")


async def extract_content(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = FETCH_TIMEOUT_SECONDS,
) -> str:
    """Fetch *url* (bounded by *timeout*) and return its plain text."""
    headers = {"User-Agent": USER_AGENT}

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
                response = await own_client.get(url, headers=headers)
        else:
            response = await client.get(url, headers=headers, timeout=timeout)
    except httpx.TimeoutException as exc:
        raise PerSourceFailure(url, f"timed out after {timeout:.0f}s") from exc
    except httpx.HTTPError as exc:
        raise PerSourceFailure(url, f"fetch failed: {exc}") from exc

    if response.status_code >= 400:
        raise PerSourceFailure(url, f"HTTP {response.status_code}")

    content_type = response.headers.get("content-type", "").lower()

    try:
        if _is_pdf(url, content_type):
            text = extract_pdf_text(response.content)
        elif "text/plain" in content_type:
            text = _collapse_whitespace(response.text)
        else:
            text = extract_html_text(response.text)
    except Exception as exc:
        raise PerSourceFailure(url, f"extraction failed: {exc}") from exc

    print(f"📄 [EXTRACT] {len(text)} chars from {url}")
    return text
