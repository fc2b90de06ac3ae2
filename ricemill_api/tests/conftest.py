"""Shared pytest fixtures for API tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ricemill.data_repository import get_engine
from ricemill.schema import ensure_schema


@pytest.fixture
def api_db(tmp_path, monkeypatch):
    """Fresh SQLite database for each test."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("SKIP_USER_BOOTSTRAP", "1")
    get_engine.cache_clear()
    engine = get_engine()
    ensure_schema(engine)
    yield engine
    engine.dispose()
    get_engine.cache_clear()


@pytest.fixture
def client(api_db) -> TestClient:
    """Create a TestClient instance for the FastAPI app."""
    from ricemill_api.main import app

    return TestClient(app)


@pytest.fixture
def mock_user():
    """Mock admin user for testing."""
    from ricemill_api.dependencies.security import AuthenticatedUser

    return AuthenticatedUser(id=1, username="test_admin", role="admin")


@pytest.fixture
def authenticated_client(client, mock_user):
    """Client with mocked authentication."""
    from ricemill_api.main import app
    from ricemill_api.dependencies.security import get_current_user

    app.dependency_overrides[get_current_user] = lambda: mock_user
    yield client
    app.dependency_overrides.clear()
