"""Content extractor tests — HTML cleanup, main-region selection, PDF/plain dispatch, failures."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
from unittest.mock import patch

import httpx
import pytest

from viability.exceptions import PerSourceFailure
from viability.services.content_extractor import extract_content, extract_html_text

ARTICLE_HTML = """
<html>
  <head><style>.x { color: red; }</style><script>var tracking = 1;</script></head>
  <body>
    <nav>Home About Pricing</nav>
    <header>Site header</header>
    <main>
      <h1>Pet boxes</h1>
      <p>Eco friendly   subscription boxes
         are growing.</p>
      <div class="ads">Buy now!</div>
    </main>
    <aside>Related links</aside>
    <footer>Copyright 2024</footer>
  </body>
</html>
"""


def _fetch(url, handler):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await extract_content(url, client=client)

    return asyncio.run(_run())


class TestHtmlExtraction:
    def test_main_region_without_boilerplate(self):
        assert extract_html_text(ARTICLE_HTML) == "Pet boxes Eco friendly subscription boxes are growing."

    def test_article_selector(self):
        html = "<body><div>Intro</div><article><p>Article body text</p></article></body>"
        assert extract_html_text(html) == "Article body text"

    def test_falls_back_to_body(self):
        html = "<html><body><div>Hello   world text</div><aside>ads</aside></body></html>"
        assert extract_html_text(html) == "Hello world text"

    def test_comments_removed(self):
        html = '<body><div id="content">Useful text<div id="comments">Spam</div></div></body>'
        assert extract_html_text(html) == "Useful text"


class TestExtractContent:
    def test_html_response(self):
        def handler(request):
            assert "BizViabilityBot" in request.headers["user-agent"]
            return httpx.Response(200, headers={"content-type": "text/html; charset=utf-8"}, text=ARTICLE_HTML)

        text = _fetch("https://example.com/pets", handler)
        assert text == "Pet boxes Eco friendly subscription boxes are growing."

    def test_plain_text_response(self):
        def handler(request):
            return httpx.Response(200, headers={"content-type": "text/plain"}, text="Plain   market notes\n")

        assert _fetch("https://example.com/notes.txt", handler) == "Plain market notes"

    def test_pdf_by_content_type(self):
        def handler(request):
            return httpx.Response(200, headers={"content-type": "application/pdf"}, content=b"%PDF-1.4 fake")

        with patch("viability.services.content_extractor.extract_pdf_text", return_value="Report text") as pdf:
            assert _fetch("https://example.com/download", handler) == "Report text"
        pdf.assert_called_once_with(b"%PDF-1.4 fake")

    def test_pdf_by_url_suffix(self):
        def handler(request):
            return httpx.Response(200, headers={"content-type": "application/octet-stream"}, content=b"%PDF")

        with patch("viability.services.content_extractor.extract_pdf_text", return_value="From suffix") as pdf:
            assert _fetch("https://example.com/report.PDF?dl=1", handler) == "From suffix"
        pdf.assert_called_once()

    def test_http_error_raises_per_source_failure(self):
        def handler(request):
            return httpx.Response(404, text="missing")

        with pytest.raises(PerSourceFailure) as exc_info:
            _fetch("https://example.com/gone", handler)
        assert exc_info.value.url == "https://example.com/gone"
        assert "404" in exc_info.value.reason

    def test_timeout_raises_per_source_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(PerSourceFailure, match="timed out"):
            _fetch("https://example.com/slow", handler)

    def test_broken_pdf_raises_per_source_failure(self):
        def handler(request):
            return httpx.Response(200, headers={"content-type": "application/pdf"}, content=b"not a pdf")

        with pytest.raises(PerSourceFailure, match="extraction failed"):
            _fetch("https://example.com/broken.pdf", handler)
