"""Accès base de données partagé : engine mis en cache et helpers de requête."""

from __future__ import annotations

import logging
from functools import lru_cache

import pandas as pd
from sqlalchemy import Select, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .database_url import get_database_url
from .settings import AppSettings

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Retourne le moteur SQLAlchemy, mis en cache via functools.

    Appeler ``get_engine.cache_clear()`` après un changement de ``DATABASE_URL``.
    """

    settings = AppSettings.load()
    database_url = get_database_url()

    kwargs: dict = {"pool_pre_ping": True, "echo": settings.db_echo}
    if database_url.startswith("sqlite"):
        # SQLite n'accepte pas pool_size/max_overflow ; la base mémoire doit partager une connexion.
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(
            {
                "pool_size": max(1, settings.db_pool_size),
                "max_overflow": max(0, settings.db_pool_max_overflow),
            }
        )

    engine = create_engine(database_url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    logger.debug("Engine created for dialect %s", engine.dialect.name)
    return engine


def query_df(statement: Select) -> pd.DataFrame:
    """Exécute un ``SELECT`` et retourne le résultat sous forme de DataFrame Pandas.

    Les colonnes sont conservées même quand aucune ligne ne revient.
    """

    with get_engine().begin() as conn:
        result = conn.execute(statement)
        columns = list(result.keys())
        rows = result.fetchall()

    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([tuple(row) for row in rows], columns=columns)


__all__ = ["get_engine", "query_df"]
