"""
Sale Repository - Data access for the sales table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol, Sequence

import sqlalchemy as sa

from ricemill.calculations import money, sale_revenue, total_weight
from ricemill.schema import sales

from .base import PagedResult, PageRequest, SqlRepository, as_date, order_clause

_SORTABLE = {
    "date": "date",
    "quantity": "quantity",
    "price": "price",
    "net_profit": "net_profit",
    "created_at": "created_at",
}


@dataclass
class Sale:
    """Sale entity.

    ``net_profit`` and ``rendement`` are persisted because they depend on the
    purchase cost at write time; ``total_weight`` and ``revenue`` are derived
    from the sale's own fields on read.
    """

    id: int | None
    date: date
    quantity: int
    weight: Decimal
    price: Decimal
    purchase_id: int | None = None
    extra_weight: Decimal = Decimal("0")
    pellet: Decimal = Decimal("0")
    fuel: Decimal = Decimal("0")
    labor: Decimal = Decimal("0")
    net_profit: Decimal | None = None
    rendement: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_weight(self) -> Decimal:
        return money(total_weight(self.quantity, self.weight, self.extra_weight))

    @property
    def revenue(self) -> Decimal:
        return sale_revenue(self.quantity, self.weight, self.price, self.extra_weight)

    @property
    def operational_costs(self) -> Decimal:
        return money(self.pellet + self.fuel + self.labor)


@dataclass
class SaleFilters:
    purchase_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None


class SaleRepository(Protocol):
    """Sale repository interface."""

    def get_by_id(self, id: int) -> Sale | None:
        ...

    def search(self, page: PageRequest, filters: SaleFilters) -> PagedResult[Sale]:
        ...

    def list_by_purchase(self, purchase_id: int) -> Sequence[Sale]:
        ...

    def sold_weight_for_purchase(self, purchase_id: int, *, exclude_sale_id: int | None = None) -> Decimal:
        ...

    def add(self, sale: Sale) -> Sale:
        ...

    def update(self, sale: Sale) -> Sale:
        ...

    def delete(self, id: int) -> bool:
        ...


class SqlSaleRepository(SqlRepository):
    """SQLAlchemy implementation of SaleRepository."""

    def get_by_id(self, id: int) -> Sale | None:
        row = self._conn.execute(sa.select(sales).where(sales.c.id == id)).mappings().first()
        return self._row_to_sale(row) if row else None

    def search(self, page: PageRequest, filters: SaleFilters) -> PagedResult[Sale]:
        stmt = sa.select(sales)
        if filters.purchase_id is not None:
            stmt = stmt.where(sales.c.purchase_id == filters.purchase_id)
        if filters.start_date is not None:
            stmt = stmt.where(sales.c.date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(sales.c.date <= filters.end_date)

        total = self._count(stmt)
        rows = self._conn.execute(
            stmt.order_by(*order_clause(sales, page, _SORTABLE, "date"))
            .limit(page.limit)
            .offset(page.offset)
        ).mappings()
        return PagedResult(
            items=[self._row_to_sale(row) for row in rows],
            total=total,
            page=page.page,
            per_page=page.limit,
        )

    def list_by_purchase(self, purchase_id: int) -> Sequence[Sale]:
        rows = self._conn.execute(
            sa.select(sales)
            .where(sales.c.purchase_id == purchase_id)
            .order_by(sales.c.date.desc(), sales.c.id.desc())
        ).mappings()
        return [self._row_to_sale(row) for row in rows]

    def sold_weight_for_purchase(self, purchase_id: int, *, exclude_sale_id: int | None = None) -> Decimal:
        """``SUM(quantity * (weight + extra_weight))`` des ventes d'un achat."""

        stmt = sa.select(
            sa.func.coalesce(
                sa.func.sum(sales.c.quantity * (sales.c.weight + sales.c.extra_weight)), 0
            )
        ).where(sales.c.purchase_id == purchase_id)
        if exclude_sale_id is not None:
            stmt = stmt.where(sales.c.id != exclude_sale_id)
        return money(self._conn.execute(stmt).scalar_one() or 0)

    def add(self, sale: Sale) -> Sale:
        result = self._conn.execute(sales.insert().values(**self._values(sale)))
        return self.get_by_id(result.inserted_primary_key[0])

    def update(self, sale: Sale) -> Sale:
        self._conn.execute(
            sales.update()
            .where(sales.c.id == sale.id)
            .values(**self._values(sale), updated_at=sa.func.current_timestamp())
        )
        return self.get_by_id(sale.id)

    def delete(self, id: int) -> bool:
        result = self._conn.execute(sales.delete().where(sales.c.id == id))
        return result.rowcount > 0

    @staticmethod
    def _values(sale: Sale) -> dict:
        return {
            "date": sale.date,
            "purchase_id": sale.purchase_id,
            "quantity": sale.quantity,
            "weight": sale.weight,
            "extra_weight": sale.extra_weight,
            "price": sale.price,
            "pellet": sale.pellet,
            "fuel": sale.fuel,
            "labor": sale.labor,
            "net_profit": sale.net_profit,
            "rendement": sale.rendement,
        }

    @staticmethod
    def _row_to_sale(row) -> Sale:
        return Sale(
            id=int(row["id"]),
            date=as_date(row["date"]),
            purchase_id=row["purchase_id"],
            quantity=int(row["quantity"]),
            weight=money(row["weight"]),
            extra_weight=money(row["extra_weight"] or 0),
            price=money(row["price"]),
            pellet=money(row["pellet"] or 0),
            fuel=money(row["fuel"] or 0),
            labor=money(row["labor"] or 0),
            net_profit=money(row["net_profit"]) if row["net_profit"] is not None else None,
            rendement=row["rendement"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
