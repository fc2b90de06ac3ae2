"""Fixtures partagées : base SQLite jetable par test."""

from __future__ import annotations

import pytest

from ricemill.data_repository import get_engine
from ricemill.schema import ensure_schema


@pytest.fixture
def ledger_db(tmp_path, monkeypatch):
    """Pointe DATABASE_URL vers un fichier SQLite neuf et crée le schéma."""

    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'ricemill.db'}")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("SKIP_USER_BOOTSTRAP", "1")
    get_engine.cache_clear()
    engine = get_engine()
    ensure_schema(engine)
    yield engine
    engine.dispose()
    get_engine.cache_clear()
