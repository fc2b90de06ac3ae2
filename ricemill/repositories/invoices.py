"""
Invoice Repository - Data access for invoices and invoice_items.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol, Sequence

import sqlalchemy as sa

from ricemill.calculations import money
from ricemill.schema import invoice_items, invoices

from .base import PagedResult, PageRequest, SqlRepository, as_date, like_pattern, order_clause

INVOICE_STATUSES: tuple[str, ...] = ("paid", "unpaid")

_SORTABLE = {
    "date": "date",
    "due_date": "due_date",
    "amount": "amount",
    "customer": "customer",
    "invoice_number": "invoice_number",
    "status": "status",
    "created_at": "created_at",
}


@dataclass
class InvoiceItem:
    """Ligne de facture ; ``total = quantity * price``."""

    id: int | None
    invoice_id: int | None
    name: str
    quantity: int
    price: Decimal
    total: Decimal = Decimal("0")
    created_at: datetime | None = None


@dataclass
class Invoice:
    """Invoice entity."""

    id: int | None
    invoice_number: str
    date: date
    customer: str
    due_date: date
    amount: Decimal = Decimal("0")
    status: str = "unpaid"
    items: list[InvoiceItem] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"

    def days_overdue(self, as_of: date) -> int:
        return (as_of - self.due_date).days


@dataclass
class InvoiceFilters:
    customer: str | None = None
    status: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    overdue: bool | None = None
    as_of: date | None = None


class InvoiceRepository(Protocol):
    """Invoice repository interface."""

    def get_by_id(self, id: int, *, for_update: bool = False, with_items: bool = True) -> Invoice | None:
        ...

    def get_by_number(self, invoice_number: str) -> Invoice | None:
        ...

    def numbers_with_prefix(self, prefix: str) -> Sequence[str]:
        ...

    def search(self, page: PageRequest, filters: InvoiceFilters) -> PagedResult[Invoice]:
        ...

    def search_text(self, term: str, *, limit: int = 50) -> Sequence[Invoice]:
        ...

    def list_overdue(self, as_of: date) -> Sequence[Invoice]:
        ...

    def add(self, invoice: Invoice) -> Invoice:
        ...

    def update(self, invoice: Invoice) -> Invoice:
        ...

    def delete(self, id: int) -> bool:
        ...

    def get_item(self, item_id: int) -> InvoiceItem | None:
        ...

    def add_items(self, invoice_id: int, items: Sequence[InvoiceItem]) -> None:
        ...

    def delete_items(self, invoice_id: int) -> None:
        ...

    def update_item(self, item: InvoiceItem) -> InvoiceItem:
        ...

    def delete_item(self, item_id: int) -> bool:
        ...

    def sum_item_totals(self, invoice_id: int) -> Decimal:
        ...

    def set_amount(self, invoice_id: int, amount: Decimal) -> None:
        ...


class SqlInvoiceRepository(SqlRepository):
    """SQLAlchemy implementation of InvoiceRepository."""

    def get_by_id(self, id: int, *, for_update: bool = False, with_items: bool = True) -> Invoice | None:
        stmt = sa.select(invoices).where(invoices.c.id == id)
        if for_update and self._for_update_supported:
            stmt = stmt.with_for_update()
        row = self._conn.execute(stmt).mappings().first()
        if not row:
            return None
        invoice = self._row_to_invoice(row)
        if with_items:
            invoice.items = self.list_items(invoice.id)
        return invoice

    def get_by_number(self, invoice_number: str) -> Invoice | None:
        row = self._conn.execute(
            sa.select(invoices).where(invoices.c.invoice_number == invoice_number)
        ).mappings().first()
        return self._row_to_invoice(row) if row else None

    def numbers_with_prefix(self, prefix: str) -> Sequence[str]:
        rows = self._conn.execute(
            sa.select(invoices.c.invoice_number).where(
                invoices.c.invoice_number.like(f"{prefix}%")
            )
        ).scalars()
        return list(rows)

    def search(self, page: PageRequest, filters: InvoiceFilters) -> PagedResult[Invoice]:
        stmt = sa.select(invoices)
        if filters.customer and filters.customer.strip():
            stmt = stmt.where(
                sa.func.lower(invoices.c.customer).like(like_pattern(filters.customer), escape="\\")
            )
        if filters.status:
            stmt = stmt.where(invoices.c.status == filters.status)
        if filters.start_date is not None:
            stmt = stmt.where(invoices.c.date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(invoices.c.date <= filters.end_date)
        if filters.min_amount is not None:
            stmt = stmt.where(invoices.c.amount >= filters.min_amount)
        if filters.max_amount is not None:
            stmt = stmt.where(invoices.c.amount <= filters.max_amount)
        if filters.overdue:
            as_of = filters.as_of or date.today()
            stmt = stmt.where(invoices.c.status == "unpaid", invoices.c.due_date < as_of)

        total = self._count(stmt)
        rows = self._conn.execute(
            stmt.order_by(*order_clause(invoices, page, _SORTABLE, "date"))
            .limit(page.limit)
            .offset(page.offset)
        ).mappings()
        items = [self._row_to_invoice(row) for row in rows]
        for invoice in items:
            invoice.items = self.list_items(invoice.id)
        return PagedResult(items=items, total=total, page=page.page, per_page=page.limit)

    def search_text(self, term: str, *, limit: int = 50) -> Sequence[Invoice]:
        pattern = like_pattern(term)
        rows = self._conn.execute(
            sa.select(invoices)
            .where(
                sa.or_(
                    sa.func.lower(invoices.c.invoice_number).like(pattern, escape="\\"),
                    sa.func.lower(invoices.c.customer).like(pattern, escape="\\"),
                )
            )
            .order_by(invoices.c.date.desc(), invoices.c.id.desc())
            .limit(limit)
        ).mappings()
        return [self._row_to_invoice(row) for row in rows]

    def list_overdue(self, as_of: date) -> Sequence[Invoice]:
        rows = self._conn.execute(
            sa.select(invoices)
            .where(invoices.c.status == "unpaid", invoices.c.due_date < as_of)
            .order_by(invoices.c.due_date.asc(), invoices.c.id.asc())
        ).mappings()
        return [self._row_to_invoice(row) for row in rows]

    def add(self, invoice: Invoice) -> Invoice:
        result = self._conn.execute(invoices.insert().values(**self._values(invoice)))
        return self.get_by_id(result.inserted_primary_key[0])

    def update(self, invoice: Invoice) -> Invoice:
        self._conn.execute(
            invoices.update()
            .where(invoices.c.id == invoice.id)
            .values(**self._values(invoice), updated_at=sa.func.current_timestamp())
        )
        return self.get_by_id(invoice.id)

    def delete(self, id: int) -> bool:
        self.delete_items(id)
        result = self._conn.execute(invoices.delete().where(invoices.c.id == id))
        return result.rowcount > 0

    # --- Lignes ---

    def list_items(self, invoice_id: int) -> list[InvoiceItem]:
        rows = self._conn.execute(
            sa.select(invoice_items)
            .where(invoice_items.c.invoice_id == invoice_id)
            .order_by(invoice_items.c.id.asc())
        ).mappings()
        return [self._row_to_item(row) for row in rows]

    def get_item(self, item_id: int) -> InvoiceItem | None:
        row = self._conn.execute(
            sa.select(invoice_items).where(invoice_items.c.id == item_id)
        ).mappings().first()
        return self._row_to_item(row) if row else None

    def add_items(self, invoice_id: int, items: Sequence[InvoiceItem]) -> None:
        if not items:
            return
        self._conn.execute(
            invoice_items.insert(),
            [
                {
                    "invoice_id": invoice_id,
                    "name": item.name,
                    "quantity": item.quantity,
                    "price": item.price,
                    "total": item.total,
                }
                for item in items
            ],
        )

    def add_item(self, invoice_id: int, item: InvoiceItem) -> InvoiceItem:
        result = self._conn.execute(
            invoice_items.insert().values(
                invoice_id=invoice_id,
                name=item.name,
                quantity=item.quantity,
                price=item.price,
                total=item.total,
            )
        )
        return self.get_item(result.inserted_primary_key[0])

    def delete_items(self, invoice_id: int) -> None:
        self._conn.execute(invoice_items.delete().where(invoice_items.c.invoice_id == invoice_id))

    def update_item(self, item: InvoiceItem) -> InvoiceItem:
        self._conn.execute(
            invoice_items.update()
            .where(invoice_items.c.id == item.id)
            .values(name=item.name, quantity=item.quantity, price=item.price, total=item.total)
        )
        return self.get_item(item.id)

    def delete_item(self, item_id: int) -> bool:
        result = self._conn.execute(invoice_items.delete().where(invoice_items.c.id == item_id))
        return result.rowcount > 0

    def sum_item_totals(self, invoice_id: int) -> Decimal:
        total = self._conn.execute(
            sa.select(sa.func.coalesce(sa.func.sum(invoice_items.c.total), 0)).where(
                invoice_items.c.invoice_id == invoice_id
            )
        ).scalar_one()
        return money(total or 0)

    def set_amount(self, invoice_id: int, amount: Decimal) -> None:
        self._conn.execute(
            invoices.update()
            .where(invoices.c.id == invoice_id)
            .values(amount=amount, updated_at=sa.func.current_timestamp())
        )

    @staticmethod
    def _values(invoice: Invoice) -> dict:
        return {
            "invoice_number": invoice.invoice_number,
            "date": invoice.date,
            "customer": invoice.customer,
            "due_date": invoice.due_date,
            "amount": invoice.amount,
            "status": invoice.status,
        }

    @staticmethod
    def _row_to_invoice(row) -> Invoice:
        return Invoice(
            id=int(row["id"]),
            invoice_number=row["invoice_number"],
            date=as_date(row["date"]),
            customer=row["customer"],
            due_date=as_date(row["due_date"]),
            amount=money(row["amount"] or 0),
            status=row["status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_item(row) -> InvoiceItem:
        return InvoiceItem(
            id=int(row["id"]),
            invoice_id=int(row["invoice_id"]),
            name=row["name"],
            quantity=int(row["quantity"]),
            price=money(row["price"]),
            total=money(row["total"] or 0),
            created_at=row["created_at"],
        )
