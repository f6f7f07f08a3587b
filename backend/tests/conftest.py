"""Pytest configuration and fixtures.

Every test gets its own SQLite file and blob directory under ``tmp_path``;
cached settings, connections and rate-limit counters are reset around it.
"""

import pytest
from app.blobs import reset_blob_store
from app.config import get_settings
from app.database import get_connection, reset_connection
from app.main import app
from app.rate_limit import limiter
from backend_helpers import TEST_PASSWORD, TEST_PUBLIC_TOKEN, TEST_WEBHOOK_SECRET
from fastapi.testclient import TestClient


@pytest.fixture(autouse=True)
def isolated_backend(tmp_path, monkeypatch):
    """Point the backend at throwaway storage with known secrets."""
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "chronolog.db"))
    monkeypatch.setenv("BLOB_DIR", str(tmp_path / "blobs"))
    monkeypatch.setenv("AUTH_PASSWORD", TEST_PASSWORD)
    monkeypatch.setenv("PUBLIC_API_TOKEN", TEST_PUBLIC_TOKEN)
    monkeypatch.setenv("WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)

    get_settings.cache_clear()
    reset_connection()
    reset_blob_store()
    limiter.reset()
    yield
    reset_connection()
    reset_blob_store()
    get_settings.cache_clear()


@pytest.fixture
def client():
    """Create a test client (runs the app lifespan)."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def password():
    return TEST_PASSWORD


@pytest.fixture
def token(client):
    """A freshly minted device token."""
    response = client.post("/api/auth", json={"password": TEST_PASSWORD})
    assert response.status_code == 200
    return response.json()["token"]


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db(client):
    return get_connection()
