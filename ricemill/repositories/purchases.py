"""
Purchase Repository - Data access for the purchases table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol, Sequence

import sqlalchemy as sa

from ricemill.calculations import money, total_weight
from ricemill.schema import purchases, sales

from .base import PagedResult, PageRequest, SqlRepository, as_date, like_pattern, order_clause

_SORTABLE = {
    "date": "date",
    "total_cost": "total_cost",
    "quantity": "quantity",
    "price": "price",
    "supplier": "supplier",
    "created_at": "created_at",
}


@dataclass
class Purchase:
    """Purchase entity. ``total_cost`` is derived, see ``calculations.purchase_total_cost``."""

    id: int | None
    date: date
    quantity: int
    weight: Decimal
    price: Decimal
    supplier_id: int | None = None
    supplier: str | None = None
    extra_weight: Decimal = Decimal("0")
    truck_cost: Decimal = Decimal("0")
    labor_cost: Decimal = Decimal("0")
    pellet_cost: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_weight(self) -> Decimal:
        return money(total_weight(self.quantity, self.weight, self.extra_weight))


@dataclass
class PurchaseFilters:
    supplier: str | None = None
    supplier_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    min_total_cost: Decimal | None = None
    max_total_cost: Decimal | None = None


@dataclass
class InventoryPosition:
    """Stock restant d'un achat (présentation FIFO)."""

    purchase: Purchase
    sold_weight: Decimal
    sales_count: int

    @property
    def remaining_weight(self) -> Decimal:
        return money(self.purchase.total_weight - self.sold_weight)


class PurchaseRepository(Protocol):
    """Purchase repository interface."""

    def get_by_id(self, id: int, *, for_update: bool = False) -> Purchase | None:
        ...

    def search(self, page: PageRequest, filters: PurchaseFilters) -> PagedResult[Purchase]:
        ...

    def list_by_supplier(self, supplier_id: int) -> Sequence[Purchase]:
        ...

    def search_by_supplier_name(self, term: str, *, limit: int = 50) -> Sequence[Purchase]:
        ...

    def has_sales(self, id: int) -> bool:
        ...

    def inventory_positions(self) -> Sequence[InventoryPosition]:
        ...

    def add(self, purchase: Purchase) -> Purchase:
        ...

    def update(self, purchase: Purchase) -> Purchase:
        ...

    def delete(self, id: int) -> bool:
        ...


class SqlPurchaseRepository(SqlRepository):
    """SQLAlchemy implementation of PurchaseRepository."""

    def get_by_id(self, id: int, *, for_update: bool = False) -> Purchase | None:
        stmt = sa.select(purchases).where(purchases.c.id == id)
        if for_update and self._for_update_supported:
            stmt = stmt.with_for_update()
        row = self._conn.execute(stmt).mappings().first()
        return self._row_to_purchase(row) if row else None

    def search(self, page: PageRequest, filters: PurchaseFilters) -> PagedResult[Purchase]:
        stmt = sa.select(purchases)
        if filters.supplier and filters.supplier.strip():
            stmt = stmt.where(
                sa.func.lower(purchases.c.supplier).like(like_pattern(filters.supplier), escape="\\")
            )
        if filters.supplier_id is not None:
            stmt = stmt.where(purchases.c.supplier_id == filters.supplier_id)
        if filters.start_date is not None:
            stmt = stmt.where(purchases.c.date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(purchases.c.date <= filters.end_date)
        if filters.min_total_cost is not None:
            stmt = stmt.where(purchases.c.total_cost >= filters.min_total_cost)
        if filters.max_total_cost is not None:
            stmt = stmt.where(purchases.c.total_cost <= filters.max_total_cost)

        total = self._count(stmt)
        rows = self._conn.execute(
            stmt.order_by(*order_clause(purchases, page, _SORTABLE, "date"))
            .limit(page.limit)
            .offset(page.offset)
        ).mappings()
        return PagedResult(
            items=[self._row_to_purchase(row) for row in rows],
            total=total,
            page=page.page,
            per_page=page.limit,
        )

    def list_by_supplier(self, supplier_id: int) -> Sequence[Purchase]:
        rows = self._conn.execute(
            sa.select(purchases)
            .where(purchases.c.supplier_id == supplier_id)
            .order_by(purchases.c.date.desc(), purchases.c.id.desc())
        ).mappings()
        return [self._row_to_purchase(row) for row in rows]

    def search_by_supplier_name(self, term: str, *, limit: int = 50) -> Sequence[Purchase]:
        rows = self._conn.execute(
            sa.select(purchases)
            .where(sa.func.lower(purchases.c.supplier).like(like_pattern(term), escape="\\"))
            .order_by(purchases.c.date.desc(), purchases.c.id.desc())
            .limit(limit)
        ).mappings()
        return [self._row_to_purchase(row) for row in rows]

    def has_sales(self, id: int) -> bool:
        # Existence (LIMIT 1), pas un comptage.
        row = self._conn.execute(
            sa.select(sales.c.id).where(sales.c.purchase_id == id).limit(1)
        ).first()
        return row is not None

    def inventory_positions(self) -> Sequence[InventoryPosition]:
        sold = (
            sa.select(
                sales.c.purchase_id,
                sa.func.coalesce(
                    sa.func.sum(sales.c.quantity * (sales.c.weight + sales.c.extra_weight)), 0
                ).label("sold_weight"),
                sa.func.count(sales.c.id).label("sales_count"),
            )
            .where(sales.c.purchase_id.is_not(None))
            .group_by(sales.c.purchase_id)
            .subquery()
        )
        rows = self._conn.execute(
            sa.select(purchases, sold.c.sold_weight, sold.c.sales_count)
            .select_from(purchases.outerjoin(sold, sold.c.purchase_id == purchases.c.id))
            .order_by(purchases.c.date.asc(), purchases.c.id.asc())
        ).mappings()
        return [
            InventoryPosition(
                purchase=self._row_to_purchase(row),
                sold_weight=money(row["sold_weight"] or 0),
                sales_count=int(row["sales_count"] or 0),
            )
            for row in rows
        ]

    def add(self, purchase: Purchase) -> Purchase:
        result = self._conn.execute(purchases.insert().values(**self._values(purchase)))
        return self.get_by_id(result.inserted_primary_key[0])

    def update(self, purchase: Purchase) -> Purchase:
        self._conn.execute(
            purchases.update()
            .where(purchases.c.id == purchase.id)
            .values(**self._values(purchase), updated_at=sa.func.current_timestamp())
        )
        return self.get_by_id(purchase.id)

    def delete(self, id: int) -> bool:
        result = self._conn.execute(purchases.delete().where(purchases.c.id == id))
        return result.rowcount > 0

    @staticmethod
    def _values(purchase: Purchase) -> dict:
        return {
            "date": purchase.date,
            "supplier_id": purchase.supplier_id,
            "supplier": purchase.supplier,
            "quantity": purchase.quantity,
            "weight": purchase.weight,
            "extra_weight": purchase.extra_weight,
            "price": purchase.price,
            "truck_cost": purchase.truck_cost,
            "labor_cost": purchase.labor_cost,
            "pellet_cost": purchase.pellet_cost,
            "total_cost": purchase.total_cost,
        }

    @staticmethod
    def _row_to_purchase(row) -> Purchase:
        return Purchase(
            id=int(row["id"]),
            date=as_date(row["date"]),
            supplier_id=row["supplier_id"],
            supplier=row["supplier"],
            quantity=int(row["quantity"]),
            weight=money(row["weight"]),
            extra_weight=money(row["extra_weight"] or 0),
            price=money(row["price"]),
            truck_cost=money(row["truck_cost"] or 0),
            labor_cost=money(row["labor_cost"] or 0),
            pellet_cost=money(row["pellet_cost"] or 0),
            total_cost=money(row["total_cost"] or 0),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
