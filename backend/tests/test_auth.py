"""Authentication tests — JWT round trip, bearer validation, first-use user creation."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from viability.database import Base, get_db
from viability.main import app
from viability.models.user import User
from viability.services.auth_utils import create_access_token, decode_access_token

# ---------------------------------------------------------------------------
# Test database setup (file-based SQLite for compatibility)
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite:///./test_auth.db"
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


# ===================================================================== #
#  Unit tests: auth_utils                                                 #
# ===================================================================== #

class TestJWT:
    def test_create_and_decode(self):
        token = create_access_token("user-123", "test@example.com")
        payload = decode_access_token(token)
        assert payload is not None
        assert payload["sub"] == "user-123"
        assert payload["email"] == "test@example.com"

    def test_invalid_token(self):
        assert decode_access_token("garbage.token.here") is None

    def test_expired_token(self):
        token = create_access_token("user-123", "test@example.com", expires_minutes=-1)
        assert decode_access_token(token) is None


# ===================================================================== #
#  Integration tests: bearer dependency                                   #
# ===================================================================== #

class TestBearerDependency:
    def _status_url(self):
        return f"/discovery/status/{uuid.uuid4()}"

    def test_missing_token(self):
        res = client.get(self._status_url())
        assert res.status_code == 401
        assert res.json()["detail"] == "Authentication required"

    def test_invalid_token(self):
        res = client.get(self._status_url(), headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401
        assert res.json()["detail"] == "Invalid or expired token"

    def test_non_uuid_subject(self):
        token = create_access_token("user-123", "test@example.com")
        res = client.get(self._status_url(), headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_existing_user_is_resolved(self):
        db = TestingSessionLocal()
        user = User(id=uuid.uuid4(), email="known@test.com")
        db.add(user)
        db.commit()
        token = create_access_token(str(user.id), user.email)
        db.close()

        # Authenticated; the job simply does not exist.
        res = client.get(self._status_url(), headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 404

    def test_unknown_user_created_on_first_use(self):
        user_id = str(uuid.uuid4())
        token = create_access_token(user_id, "New@Test.com")

        res = client.get(self._status_url(), headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 404

        db = TestingSessionLocal()
        user = db.query(User).filter(User.id == uuid.UUID(user_id)).first()
        assert user is not None
        assert user.email == "new@test.com"
        db.close()


# ===================================================================== #
#  Public endpoints                                                       #
# ===================================================================== #

class TestPublicEndpoints:
    def test_health_needs_no_token(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_root_lists_discovery_endpoints(self):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "discover" in resp.json()["endpoints"]

    def test_discovery_requires_bearer(self):
        resp = client.post("/discovery/urls", json={"businessIdea": "x" * 30})
        assert resp.status_code in (401, 403)
