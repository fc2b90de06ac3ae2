"""
Base Repository - pagination helpers and the SQL unit of work.

Implements the Repository pattern for clean separation between
business logic and data access. Every SQL repository is bound to the
connection of a :class:`SqlUnitOfWork`, so one ledger operation runs in a
single transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Generic, Sequence, TypeVar

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class PagedResult(Generic[T]):
    """Container for paginated results."""

    items: Sequence[T]
    total: int
    page: int
    per_page: int

    @property
    def total_pages(self) -> int:
        if self.per_page <= 0:
            return 0
        return (self.total + self.per_page - 1) // self.per_page

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


@dataclass(frozen=True)
class PageRequest:
    """Pagination + tri demandés par l'appelant."""

    page: int = 1
    per_page: int = 10
    sort_by: str = "date"
    sort_order: str = "desc"

    @property
    def offset(self) -> int:
        return (max(1, self.page) - 1) * self.limit

    @property
    def limit(self) -> int:
        return max(1, min(self.per_page, 500))


def order_clause(table: sa.Table, page: PageRequest, allowed: dict[str, str], default: str):
    """Résout une colonne de tri autorisée (sinon ``default``) avec le sens demandé."""

    column_name = allowed.get(page.sort_by, allowed[default])
    column = table.c[column_name]
    if page.sort_order.lower() == "asc":
        return [column.asc(), table.c.id.asc()]
    return [column.desc(), table.c.id.desc()]


def like_pattern(term: str) -> str:
    escaped = term.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def as_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class SqlRepository:
    """Shared plumbing of the SQL repositories."""

    def __init__(self, connection: Connection):
        self._conn = connection

    @property
    def _for_update_supported(self) -> bool:
        # SQLite verrouille la base entière en écriture, pas de FOR UPDATE.
        return self._conn.dialect.name == "postgresql"

    def _count(self, statement) -> int:
        count_stmt = sa.select(sa.func.count()).select_from(statement.order_by(None).subquery())
        return int(self._conn.execute(count_stmt).scalar_one())


class SqlUnitOfWork:
    """
    SQLAlchemy implementation of Unit of Work.

    Manages a single database transaction across multiple repositories.
    Nothing is committed unless :meth:`commit` is called; an exception inside
    the ``with`` block rolls everything back.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._connection: Connection | None = None
        self._transaction = None

    def __enter__(self) -> "SqlUnitOfWork":
        from .invoices import SqlInvoiceRepository
        from .purchases import SqlPurchaseRepository
        from .sales import SqlSaleRepository
        from .suppliers import SqlSupplierRepository
        from .users import SqlUserRepository

        self._connection = self._engine.connect()
        self._transaction = self._connection.begin()
        self.suppliers = SqlSupplierRepository(self._connection)
        self.purchases = SqlPurchaseRepository(self._connection)
        self.sales = SqlSaleRepository(self._connection)
        self.invoices = SqlInvoiceRepository(self._connection)
        self.users = SqlUserRepository(self._connection)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            logger.debug("Rolling back unit of work after %s", exc_type.__name__)
            self.rollback()
        if self._connection is not None:
            self._connection.close()
        self._connection = None
        self._transaction = None

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            raise RuntimeError("UnitOfWork not started. Use 'with' statement.")
        return self._connection

    def commit(self) -> None:
        if self._transaction is not None and self._transaction.is_active:
            self._transaction.commit()

    def rollback(self) -> None:
        if self._transaction is not None and self._transaction.is_active:
            self._transaction.rollback()
