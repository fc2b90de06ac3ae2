"""
Supplier Repository - Data access for the suppliers table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, Sequence

import sqlalchemy as sa

from ricemill.schema import purchases, suppliers

from .base import PagedResult, PageRequest, SqlRepository, like_pattern, order_clause

SUPPLIER_STATUSES: tuple[str, ...] = ("active", "inactive")

_SORTABLE = {
    "name": "name",
    "status": "status",
    "created_at": "created_at",
    "date": "created_at",
}


@dataclass
class Supplier:
    """Supplier entity."""

    id: int | None
    name: str
    contact_person: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    status: str = "active"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class SupplierRepository(Protocol):
    """Supplier repository interface."""

    def get_by_id(self, id: int) -> Supplier | None:
        ...

    def get_by_name(self, name: str, *, exclude_id: int | None = None) -> Supplier | None:
        ...

    def search(
        self, page: PageRequest, *, term: str | None = None, status: str | None = None
    ) -> PagedResult[Supplier]:
        ...

    def list_active(self) -> Sequence[Supplier]:
        ...

    def count_by_status(self) -> dict[str, int]:
        ...

    def add(self, supplier: Supplier) -> Supplier:
        ...

    def update(self, supplier: Supplier) -> Supplier:
        ...

    def delete(self, id: int) -> bool:
        ...


class SqlSupplierRepository(SqlRepository):
    """SQLAlchemy implementation of SupplierRepository."""

    def get_by_id(self, id: int) -> Supplier | None:
        row = self._conn.execute(
            sa.select(suppliers).where(suppliers.c.id == id)
        ).mappings().first()
        return self._row_to_supplier(row) if row else None

    def get_by_name(self, name: str, *, exclude_id: int | None = None) -> Supplier | None:
        stmt = sa.select(suppliers).where(
            sa.func.lower(suppliers.c.name) == name.strip().lower()
        )
        if exclude_id is not None:
            stmt = stmt.where(suppliers.c.id != exclude_id)
        row = self._conn.execute(stmt).mappings().first()
        return self._row_to_supplier(row) if row else None

    def search(
        self, page: PageRequest, *, term: str | None = None, status: str | None = None
    ) -> PagedResult[Supplier]:
        stmt = sa.select(suppliers)
        if term and term.strip():
            pattern = like_pattern(term)
            stmt = stmt.where(
                sa.or_(
                    *(
                        sa.func.lower(column).like(pattern, escape="\\")
                        for column in (
                            suppliers.c.name,
                            suppliers.c.contact_person,
                            suppliers.c.email,
                            suppliers.c.phone,
                        )
                    )
                )
            )
        if status:
            stmt = stmt.where(suppliers.c.status == status)

        total = self._count(stmt)
        rows = self._conn.execute(
            stmt.order_by(*order_clause(suppliers, page, _SORTABLE, "name"))
            .limit(page.limit)
            .offset(page.offset)
        ).mappings()
        return PagedResult(
            items=[self._row_to_supplier(row) for row in rows],
            total=total,
            page=page.page,
            per_page=page.limit,
        )

    def list_active(self) -> Sequence[Supplier]:
        rows = self._conn.execute(
            sa.select(suppliers)
            .where(suppliers.c.status == "active")
            .order_by(suppliers.c.name.asc())
        ).mappings()
        return [self._row_to_supplier(row) for row in rows]

    def count_by_status(self) -> dict[str, int]:
        rows = self._conn.execute(
            sa.select(suppliers.c.status, sa.func.count()).group_by(suppliers.c.status)
        ).all()
        counts = {status: 0 for status in SUPPLIER_STATUSES}
        for status, total in rows:
            counts[status] = int(total)
        return counts

    def add(self, supplier: Supplier) -> Supplier:
        result = self._conn.execute(
            suppliers.insert().values(**self._values(supplier))
        )
        return self.get_by_id(result.inserted_primary_key[0])

    def update(self, supplier: Supplier) -> Supplier:
        self._conn.execute(
            suppliers.update()
            .where(suppliers.c.id == supplier.id)
            .values(**self._values(supplier), updated_at=sa.func.current_timestamp())
        )
        return self.get_by_id(supplier.id)

    def delete(self, id: int) -> bool:
        # Les achats restent : on détache explicitement (SET NULL) avant la suppression.
        self._conn.execute(
            purchases.update().where(purchases.c.supplier_id == id).values(supplier_id=None)
        )
        result = self._conn.execute(suppliers.delete().where(suppliers.c.id == id))
        return result.rowcount > 0

    @staticmethod
    def _values(supplier: Supplier) -> dict:
        return {
            "name": supplier.name,
            "contact_person": supplier.contact_person,
            "phone": supplier.phone,
            "email": supplier.email,
            "address": supplier.address,
            "status": supplier.status,
        }

    @staticmethod
    def _row_to_supplier(row) -> Supplier:
        return Supplier(
            id=int(row["id"]),
            name=row["name"],
            contact_person=row["contact_person"],
            phone=row["phone"],
            email=row["email"],
            address=row["address"],
            status=row["status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
