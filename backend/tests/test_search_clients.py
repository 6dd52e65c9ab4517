"""External client tests — Brave search aggregation, OpenAI chat wrapper, embeddings batching."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from viability.exceptions import EmbeddingModelMismatch
from viability.services.brave_search import aggregate_search_results, dedupe_by_url, search_brave
from viability.services.embeddings import embed_query, generate_embeddings
from viability.services.openai_client import call_openai_json_async, call_openai_text_async, sanitize_json
from viability.schemas.discovery_schema import SearchResult


def _brave_body(*urls):
    return {
        "web": {
            "results": [
                {"title": f"Title {u}", "url": u, "description": f"About {u}"} for u in urls
            ]
        }
    }


def _run_with_client(handler, coro_factory):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await coro_factory(client)

    return asyncio.run(_run())


# ===================================================================== #
#  Brave search                                                          #
# ===================================================================== #

class TestBraveSearch:
    def test_search_sends_key_and_params(self, monkeypatch):
        monkeypatch.setenv("BRAVE_SEARCH_API_KEY", "brave-test")

        def handler(request):
            assert request.headers["x-subscription-token"] == "brave-test"
            assert request.url.params["q"] == "pet subscription box"
            assert request.url.params["count"] == "5"
            return httpx.Response(200, json=_brave_body("https://a.com", "https://b.com"))

        results = _run_with_client(handler, lambda c: search_brave("pet subscription box", 5, client=c))
        assert [r.url for r in results] == ["https://a.com", "https://b.com"]
        assert results[0].title == "Title https://a.com"

    def test_results_without_url_dropped(self, monkeypatch):
        monkeypatch.setenv("BRAVE_SEARCH_API_KEY", "brave-test")
        body = {"web": {"results": [{"title": "no url"}, {"title": "ok", "url": "https://ok.com"}]}}

        def handler(request):
            return httpx.Response(200, json=body)

        results = _run_with_client(handler, lambda c: search_brave("q", client=c))
        assert [r.url for r in results] == ["https://ok.com"]

    def test_non_200_raises(self, monkeypatch):
        monkeypatch.setenv("BRAVE_SEARCH_API_KEY", "brave-test")

        def handler(request):
            return httpx.Response(429, text="rate limited")

        with pytest.raises(RuntimeError, match="429"):
            _run_with_client(handler, lambda c: search_brave("q", client=c))

    def test_aggregate_dedupes_and_tolerates_failures(self, monkeypatch):
        monkeypatch.setenv("BRAVE_SEARCH_API_KEY", "brave-test")
        bodies = {
            "q1": _brave_body("https://a.com", "https://b.com"),
            "q3": _brave_body("https://b.com", "https://c.com"),
        }

        def handler(request):
            query = request.url.params["q"]
            if query == "q2":
                return httpx.Response(500, text="boom")
            return httpx.Response(200, json=bodies[query])

        results = _run_with_client(
            handler,
            lambda c: aggregate_search_results(["q1", "q2", "q3"], client=c, delay_seconds=0),
        )
        assert [r.url for r in results] == ["https://a.com", "https://b.com", "https://c.com"]

    def test_aggregate_without_key_is_empty(self, monkeypatch):
        monkeypatch.delenv("BRAVE_SEARCH_API_KEY", raising=False)

        def handler(request):
            raise AssertionError("no request expected without a key")

        results = _run_with_client(
            handler,
            lambda c: aggregate_search_results(["q1", "q2"], client=c, delay_seconds=0),
        )
        assert results == []

    def test_dedupe_keeps_first_occurrence(self):
        rows = [
            SearchResult(title="first", url="https://x.com"),
            SearchResult(title="other", url="https://y.com"),
            SearchResult(title="second", url="https://x.com"),
        ]
        unique = dedupe_by_url(rows)
        assert [r.title for r in unique] == ["first", "other"]


# ===================================================================== #
#  OpenAI chat client                                                    #
# ===================================================================== #

def _completion(content):
    return {
        "choices": [{"message": {"content": content}}],
        "usage": {"total_tokens": 42},
    }


class TestSanitizeJson:
    def test_fenced_object(self):
        assert json.loads(sanitize_json('```json\n{"queries": ["a"]}\n```')) == {"queries": ["a"]}

    def test_bare_array_with_prose(self):
        assert json.loads(sanitize_json('Here you go: ["a", "b",] thanks')) == ["a", "b"]

    def test_trailing_commas(self):
        assert json.loads(sanitize_json('{"a": [1, 2,],}')) == {"a": [1, 2]}

    def test_no_json(self):
        with pytest.raises(ValueError):
            sanitize_json("no json here")


class TestOpenAIClient:
    def test_json_mode_payload_and_parse(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, json=_completion('{"queries": ["q1"]}'))

        result = _run_with_client(
            handler,
            lambda c: call_openai_json_async(messages=[{"role": "user", "content": "hi"}], temperature=0.7, client=c),
        )
        assert result == {"queries": ["q1"]}
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["response_format"] == {"type": "json_object"}
        assert seen["body"]["temperature"] == 0.7

    def test_retries_once_then_succeeds(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        calls = []

        def handler(request):
            calls.append(1)
            if len(calls) == 1:
                return httpx.Response(500, text="server error")
            return httpx.Response(200, json=_completion('{"ok": true}'))

        result = _run_with_client(
            handler,
            lambda c: call_openai_json_async(messages=[{"role": "user", "content": "hi"}], client=c),
        )
        assert result == {"ok": True}
        assert len(calls) == 2

    def test_invalid_json_twice_returns_none(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        def handler(request):
            return httpx.Response(200, json=_completion("not json at all"))

        result = _run_with_client(
            handler,
            lambda c: call_openai_json_async(messages=[{"role": "user", "content": "hi"}], client=c),
        )
        assert result is None

    def test_text_mode_has_no_response_format(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        def handler(request):
            body = json.loads(request.content)
            assert "response_format" not in body
            assert body["max_tokens"] == 1000
            return httpx.Response(200, json=_completion("  The market is growing.  "))

        result = _run_with_client(
            handler,
            lambda c: call_openai_text_async(messages=[{"role": "user", "content": "hi"}], client=c),
        )
        assert result == "The market is growing."

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(EnvironmentError):
            asyncio.run(call_openai_json_async(messages=[{"role": "user", "content": "hi"}]))


# ===================================================================== #
#  Embeddings                                                            #
# ===================================================================== #

class _FakeEmbeddings:
    """Stands in for AsyncOpenAI().embeddings; returns items in reverse order."""

    def __init__(self, dims=1536):
        self.dims = dims
        self.batches = []

    async def create(self, *, model, input):
        self.batches.append(list(input))
        data = [
            SimpleNamespace(index=i, embedding=[float(text.split("-")[1])] * self.dims)
            for i, text in enumerate(input)
        ]
        return SimpleNamespace(data=list(reversed(data)))


def _fake_client(dims=1536):
    return SimpleNamespace(embeddings=_FakeEmbeddings(dims))


class TestEmbeddings:
    def test_batches_of_100_in_order(self):
        client = _fake_client()
        texts = [f"chunk-{i}" for i in range(250)]
        vectors = asyncio.run(generate_embeddings(texts, client=client))

        assert [len(b) for b in client.embeddings.batches] == [100, 100, 50]
        assert len(vectors) == 250
        assert [v[0] for v in vectors] == [float(i) for i in range(250)]
        assert all(len(v) == 1536 for v in vectors)

    def test_empty_input_makes_no_calls(self):
        client = _fake_client()
        assert asyncio.run(generate_embeddings([], client=client)) == []
        assert client.embeddings.batches == []

    def test_wrong_dimensions_rejected(self):
        client = _fake_client(dims=3072)
        with pytest.raises(EmbeddingModelMismatch):
            asyncio.run(generate_embeddings(["chunk-1"], client=client))

    def test_embed_query_returns_single_vector(self):
        client = _fake_client()
        vector = asyncio.run(embed_query("query-7", client=client))
        assert vector[0] == 7.0
        assert len(vector) == 1536
