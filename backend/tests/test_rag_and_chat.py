"""RAG context + project Q&A tests — no-data marker, source blocks, chat route, rag-status route."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import uuid
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import chromadb
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from viability.constants import EMBEDDING_MODEL, NO_MARKET_DATA_MARKER
from viability.database import Base, get_db
from viability.main import app
from viability.models.ingestion_job import IngestionJob
from viability.models.project import Project
from viability.models.user import User
from viability.services import vector_store
from viability.services.auth_utils import create_access_token
from viability.services.chat_service import answer_project_question
from viability.services.rag_context import RagContext, build_rag_context, format_chunks
from viability.services.vector_store import RetrievedChunk

# ---------------------------------------------------------------------------
# Test database setup
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite:///./test_rag_and_chat.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


client = TestClient(app)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    app.dependency_overrides[get_db] = override_get_db
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def memory_collection(monkeypatch):
    collection = chromadb.EphemeralClient().create_collection(
        name=f"test_{uuid.uuid4().hex}",
        metadata={"hnsw:space": "cosine"},
    )
    monkeypatch.setattr(vector_store, "get_collection", lambda model=EMBEDDING_MODEL: collection)
    return collection


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _create_user_and_project(email="founder@test.com"):
    """Create a user with one project, return (user_id, project_id, token)."""
    db = TestingSessionLocal()
    user = User(id=uuid.uuid4(), email=email)
    project = Project(id=uuid.uuid4(), user_id=user.id, title="Eco pet subscription box")
    db.add_all([user, project])
    db.commit()
    user_id, project_id = str(user.id), str(project.id)
    db.close()
    return user_id, project_id, create_access_token(user_id, email)


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _chunk(content, url, title="", similarity=0.9, index=0):
    return RetrievedChunk(
        content=content,
        source_url=url,
        title=title,
        category="competitor",
        chunk_index=index,
        similarity=similarity,
    )


# ===================================================================== #
#  RAG context                                                           #
# ===================================================================== #

class TestRagContext:
    def test_no_chunks_yields_marker(self):
        """A project that never ingested anything gets the explicit no-data marker."""
        with patch("viability.services.vector_store.has_ingested_documents", return_value=False), \
             patch("viability.services.vector_store.search", new=AsyncMock()) as search:
            context = asyncio.run(build_rag_context(str(uuid.uuid4()), "eco pet boxes", top_k=5))

        assert context.has_data is False
        assert context.text == NO_MARKET_DATA_MARKER
        assert context.sources == []
        search.assert_not_awaited()

    def test_empty_retrieval_yields_marker(self):
        with patch("viability.services.vector_store.has_ingested_documents", return_value=True), \
             patch("viability.services.vector_store.search", new=AsyncMock(return_value=[])):
            context = asyncio.run(build_rag_context("p1", "eco pet boxes"))
        assert context.has_data is False
        assert context.text == NO_MARKET_DATA_MARKER

    def test_source_blocks_and_unique_sources(self):
        chunks = [
            _chunk("BarkBox ships monthly boxes.", "https://barkbox.com", "BarkBox"),
            _chunk("Pet market is $150B.", "https://report.example", "", similarity=0.8),
            _chunk("BarkBox pricing starts at $35.", "https://barkbox.com", "BarkBox", similarity=0.7, index=1),
        ]
        with patch("viability.services.vector_store.has_ingested_documents", return_value=True), \
             patch("viability.services.vector_store.search", new=AsyncMock(return_value=chunks)) as search:
            context = asyncio.run(build_rag_context("p1", "competitors", top_k=10))

        search.assert_awaited_once_with("p1", "competitors", 10)
        assert context.has_data is True
        assert context.text.startswith("[Source 1: BarkBox]\nBarkBox ships monthly boxes.\n")
        assert "[Source 2: https://report.example]\nPet market is $150B.\n" in context.text
        assert "[Source 3: BarkBox]" in context.text
        assert context.sources == [
            {"url": "https://barkbox.com", "title": "BarkBox"},
            {"url": "https://report.example", "title": "https://report.example"},
        ]

    def test_format_chunks_joins_blocks(self):
        text = format_chunks([_chunk("a", "https://a", "A"), _chunk("b", "https://b", "B")])
        assert text == "[Source 1: A]\na\n\n[Source 2: B]\nb\n"


# ===================================================================== #
#  Chat service                                                          #
# ===================================================================== #

class TestChatService:
    def test_answer_with_rag_data(self):
        context = RagContext(
            has_data=True,
            text="[Source 1: BarkBox]\nBarkBox ships monthly boxes.\n",
            sources=[{"url": f"https://s{i}.com", "title": f"S{i}"} for i in range(7)],
        )
        with patch("viability.services.chat_service.build_rag_context", new=AsyncMock(return_value=context)) as rag, \
             patch("viability.services.chat_service.call_openai_text_async", new=AsyncMock(return_value="BarkBox leads.")) as llm:
            result = asyncio.run(answer_project_question("p1", "Who leads?", "Eco pets"))

        rag.assert_awaited_once_with("p1", "Who leads?", top_k=10)
        prompt = llm.await_args.kwargs["messages"][1]["content"]
        assert "MARKET RESEARCH:" in prompt
        assert "BarkBox ships monthly boxes." in prompt
        assert llm.await_args.kwargs["temperature"] == 0.3
        assert result["answer"] == "BarkBox leads."
        assert result["has_rag_data"] is True
        assert len(result["sources"]) == 5

    def test_answer_without_data_mentions_marker(self):
        context = RagContext(has_data=False, text=NO_MARKET_DATA_MARKER)
        with patch("viability.services.chat_service.build_rag_context", new=AsyncMock(return_value=context)), \
             patch("viability.services.chat_service.call_openai_text_async", new=AsyncMock(return_value="General answer.")) as llm:
            result = asyncio.run(answer_project_question("p1", "Is this viable?"))

        assert NO_MARKET_DATA_MARKER in llm.await_args.kwargs["messages"][1]["content"]
        assert result == {"answer": "General answer.", "has_rag_data": False, "sources": []}

    def test_llm_failure_degrades_to_apology(self):
        context = RagContext(has_data=True, text="ctx", sources=[{"url": "https://a", "title": "A"}])
        with patch("viability.services.chat_service.build_rag_context", new=AsyncMock(return_value=context)), \
             patch("viability.services.chat_service.call_openai_text_async", new=AsyncMock(return_value=None)):
            result = asyncio.run(answer_project_question("p1", "Is this viable?"))

        assert result["answer"].startswith("Sorry")
        assert result["has_rag_data"] is True

    def test_retrieval_failure_degrades_to_apology(self):
        with patch("viability.services.chat_service.build_rag_context", new=AsyncMock(side_effect=RuntimeError("chroma down"))):
            result = asyncio.run(answer_project_question("p1", "Is this viable?"))
        assert result["answer"].startswith("Sorry")
        assert result["sources"] == []


# ===================================================================== #
#  Routes                                                                #
# ===================================================================== #

class TestProjectRoutes:
    def test_chat_route(self):
        _, project_id, token = _create_user_and_project()
        answer = {"answer": "Grounded answer", "has_rag_data": True, "sources": [{"url": "https://a.com", "title": "A"}]}
        with patch("viability.routes.projects.answer_project_question", new=AsyncMock(return_value=answer)) as chat:
            res = client.post(
                f"/projects/{project_id}/chat",
                json={"question": "Who are my competitors?"},
                headers=_auth(token),
            )

        assert res.status_code == 200
        data = res.json()
        assert data["answer"] == "Grounded answer"
        assert data["hasRagData"] is True
        assert data["sources"] == [{"url": "https://a.com", "title": "A"}]
        assert chat.await_args.kwargs["project_title"] == "Eco pet subscription box"

    def test_chat_route_other_users_project(self):
        _, project_id, _ = _create_user_and_project("owner@test.com")
        _, _, other_token = _create_user_and_project("intruder@test.com")
        res = client.post(
            f"/projects/{project_id}/chat",
            json={"question": "Who are my competitors?"},
            headers=_auth(other_token),
        )
        assert res.status_code == 404

    def test_chat_route_short_question(self):
        _, project_id, token = _create_user_and_project()
        res = client.post(f"/projects/{project_id}/chat", json={"question": "?"}, headers=_auth(token))
        assert res.status_code == 422

    def test_rag_status_without_jobs(self, memory_collection):
        _, project_id, token = _create_user_and_project()
        res = client.get(f"/projects/{project_id}/rag-status", headers=_auth(token))
        assert res.status_code == 200
        assert res.json() == {
            "projectId": project_id,
            "hasJob": False,
            "status": None,
            "chunksCount": 0,
            "lastJobAt": None,
        }

    def test_rag_status_reports_latest_job_and_chunks(self, memory_collection):
        _, project_id, token = _create_user_and_project()
        db = TestingSessionLocal()
        db.add_all([
            IngestionJob(project_id=uuid.UUID(project_id), status="failed", url_count=2,
                         created_at=datetime.utcnow() - timedelta(hours=2)),
            IngestionJob(project_id=uuid.UUID(project_id), status="completed", url_count=3, chunks_count=2),
        ])
        db.commit()
        db.close()
        memory_collection.add(
            ids=["c1", "c2"],
            embeddings=[[1.0] + [0.0] * 1535, [0.0, 1.0] + [0.0] * 1534],
            documents=["one", "two"],
            metadatas=[{"project_id": project_id}, {"project_id": project_id}],
        )

        res = client.get(f"/projects/{project_id}/rag-status", headers=_auth(token))
        data = res.json()
        assert data["hasJob"] is True
        assert data["status"] == "completed"
        assert data["chunksCount"] == 2
        assert data["lastJobAt"] is not None
