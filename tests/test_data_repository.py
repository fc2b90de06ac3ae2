import sqlalchemy as sa

from ricemill import data_repository, supplier_service
from ricemill.database_url import get_database_url
from ricemill.schema import suppliers


def test_query_df_on_empty_table_keeps_columns(ledger_db):
    df = data_repository.query_df(sa.select(suppliers.c.id, suppliers.c.name))

    assert df.empty
    assert list(df.columns) == ["id", "name"]


def test_query_df_returns_selected_rows(ledger_db):
    supplier = supplier_service.create_supplier({"name": "Direct"})
    supplier_service.create_supplier({"name": "Autre"})

    df = data_repository.query_df(
        sa.select(suppliers.c.name).where(suppliers.c.id == supplier.id)
    )

    assert df["name"].tolist() == ["Direct"]


def test_database_url_rewrites_legacy_scheme(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db:5432/mill")

    assert get_database_url() == "postgresql+psycopg2://u:p@db:5432/mill"


def test_database_url_from_parts(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("POSTGRES_USER", "miller")
    monkeypatch.setenv("POSTGRES_PASSWORD", "p@ss")
    monkeypatch.setenv("DB_HOST", "db")
    monkeypatch.delenv("POSTGRES_DB", raising=False)
    monkeypatch.delenv("DB_NAME", raising=False)
    monkeypatch.delenv("DB_PORT", raising=False)
    monkeypatch.delenv("POSTGRES_PORT", raising=False)

    assert get_database_url() == "postgresql+psycopg2://miller:p%40ss@db:5432/ricemill"
