"""Registre des factures (Invoice Ledger).

Règles :

* ``amount`` = somme des ``total`` de lignes dès que des lignes sont fournies
  ou modifiées, sauf montant explicite ;
* ``unpaid -> paid`` est la seule transition ; une facture payée refuse toute
  modification de ses lignes ;
* numéros séquentiels ``INV-YYYYMM-NNNN`` par mois.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import exc as sa_exc

from .calculations import item_total, money, require_amount, require_positive_int
from .data_repository import get_engine
from .errors import (
    DuplicateInvoiceNumber,
    InvalidStatusTransition,
    InvoiceAlreadyPaid,
    InvoiceItemNotFound,
    InvoiceNotFound,
    InvoicePaid,
    ValidationFailed,
)
from .purchase_service import MIN_UNIT_VALUE, parse_date
from .repositories.base import PagedResult, PageRequest, SqlUnitOfWork
from .repositories.invoices import INVOICE_STATUSES, Invoice, InvoiceFilters, InvoiceItem

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV"
_NUMBER_ATTEMPTS = 3


def _unit_of_work() -> SqlUnitOfWork:
    return SqlUnitOfWork(get_engine())


# --- Numérotation ---


def invoice_number_prefix(on_date: date) -> str:
    return f"{INVOICE_PREFIX}-{on_date:%Y%m}-"


def next_invoice_number(existing: Iterable[str], on_date: date) -> str:
    """Plus grande séquence du mois + 1, sur 4 chiffres.

    >>> next_invoice_number(["INV-202401-0001", "INV-202401-0009"], date(2024, 1, 15))
    'INV-202401-0010'
    """

    prefix = invoice_number_prefix(on_date)
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for number in existing:
        match = pattern.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1:04d}"


def generate_invoice_number(on_date: date | None = None) -> str:
    on_date = on_date or date.today()
    with _unit_of_work() as uow:
        existing = uow.invoices.numbers_with_prefix(invoice_number_prefix(on_date))
    return next_invoice_number(existing, on_date)


# --- Validation ---


def _clean_status(value: Any) -> str:
    status = str(value or "unpaid").strip().lower()
    if status not in INVOICE_STATUSES:
        raise ValidationFailed(
            f"Status must be one of {', '.join(INVOICE_STATUSES)}", field="status"
        )
    return status


def _clean_customer(value: Any) -> str:
    customer = str(value or "").strip()
    if len(customer) < 2:
        raise ValidationFailed("Customer name must be at least 2 characters long", field="customer")
    return customer


def _check_due_date(invoice_date: date, due_date: date) -> None:
    if due_date < invoice_date:
        raise ValidationFailed("Due date must be on or after the invoice date", field="due_date")


def _build_item(data: Mapping[str, Any]) -> InvoiceItem:
    name = str(data.get("name") or "").strip()
    if not name:
        raise ValidationFailed("Item name is required", field="name")
    quantity = require_positive_int("quantity", data.get("quantity"))
    price = require_amount("price", data.get("price"), minimum=MIN_UNIT_VALUE)
    return InvoiceItem(
        id=None,
        invoice_id=None,
        name=name,
        quantity=quantity,
        price=price,
        total=item_total(quantity, price),
    )


def _build_items(raw_items: Sequence[Mapping[str, Any]] | None) -> list[InvoiceItem]:
    return [_build_item(raw) for raw in raw_items or []]


def _ensure_unpaid(invoice: Invoice) -> None:
    if invoice.is_paid:
        logger.warning("Item change rejected on paid invoice %s", invoice.id)
        raise InvoicePaid(invoice.id)


def _refresh_amount(uow: SqlUnitOfWork, invoice_id: int) -> None:
    uow.invoices.set_amount(invoice_id, uow.invoices.sum_item_totals(invoice_id))


# --- Opérations ---


def create_invoice(data: Mapping[str, Any]) -> Invoice:
    """En-tête puis lignes, puis montant recalculé si non fourni, dans une transaction."""

    invoice_date = parse_date(data.get("date"))
    due_date = parse_date(data.get("due_date"), "due_date")
    _check_due_date(invoice_date, due_date)
    items = _build_items(data.get("items"))
    explicit_amount = data.get("amount")
    amount = require_amount("amount", explicit_amount) if explicit_amount is not None else money(0)
    provided_number = str(data.get("invoice_number") or "").strip() or None

    invoice = Invoice(
        id=None,
        invoice_number=provided_number or "",
        date=invoice_date,
        customer=_clean_customer(data.get("customer")),
        due_date=due_date,
        amount=amount,
        status=_clean_status(data.get("status")),
    )

    attempts = 1 if provided_number else _NUMBER_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            with _unit_of_work() as uow:
                if provided_number:
                    if uow.invoices.get_by_number(provided_number) is not None:
                        raise DuplicateInvoiceNumber(provided_number)
                else:
                    existing = uow.invoices.numbers_with_prefix(invoice_number_prefix(invoice_date))
                    invoice.invoice_number = next_invoice_number(existing, invoice_date)

                created = uow.invoices.add(invoice)
                uow.invoices.add_items(created.id, items)
                if explicit_amount is None and items:
                    _refresh_amount(uow, created.id)
                created = uow.invoices.get_by_id(created.id)
                uow.commit()
            break
        except sa_exc.IntegrityError as exc:
            # Numéro pris entre la lecture et l'insertion.
            if attempt >= attempts:
                raise DuplicateInvoiceNumber(invoice.invoice_number) from exc
            logger.warning("Invoice number %s already taken, retrying", invoice.invoice_number)

    logger.info("Invoice %s created (%s), amount=%s", created.id, created.invoice_number, created.amount)
    return created


def get_invoice(invoice_id: int) -> Invoice:
    with _unit_of_work() as uow:
        invoice = uow.invoices.get_by_id(invoice_id)
    if invoice is None:
        raise InvoiceNotFound(invoice_id)
    return invoice


def list_invoices(
    filters: InvoiceFilters | None = None,
    *,
    page: int = 1,
    per_page: int = 10,
    sort_by: str = "date",
    sort_order: str = "desc",
) -> PagedResult[Invoice]:
    filters = filters or InvoiceFilters()
    if filters.status is not None:
        filters.status = _clean_status(filters.status)
    request = PageRequest(page=page, per_page=per_page, sort_by=sort_by, sort_order=sort_order)
    with _unit_of_work() as uow:
        return uow.invoices.search(request, filters)


def search_invoices(term: str, *, limit: int = 50) -> list[Invoice]:
    if not term or not term.strip():
        raise ValidationFailed("Search term is required", field="q")
    with _unit_of_work() as uow:
        return list(uow.invoices.search_text(term, limit=limit))


def overdue_invoices(as_of: date | None = None) -> list[Invoice]:
    """Factures impayées dont l'échéance est passée, la plus ancienne d'abord."""
    with _unit_of_work() as uow:
        return list(uow.invoices.list_overdue(as_of or date.today()))


def update_invoice(invoice_id: int, patch: Mapping[str, Any]) -> Invoice:
    with _unit_of_work() as uow:
        invoice = uow.invoices.get_by_id(invoice_id, for_update=True)
        if invoice is None:
            raise InvoiceNotFound(invoice_id)

        replace_items = patch.get("items") is not None
        if replace_items:
            _ensure_unpaid(invoice)
        new_items = _build_items(patch.get("items")) if replace_items else []

        if "status" in patch and patch["status"] is not None:
            status = _clean_status(patch["status"])
            if invoice.is_paid and status != "paid":
                raise InvalidStatusTransition(invoice.status, status)
            invoice.status = status
        if patch.get("invoice_number"):
            number = str(patch["invoice_number"]).strip()
            if number != invoice.invoice_number:
                if uow.invoices.get_by_number(number) is not None:
                    raise DuplicateInvoiceNumber(number)
                invoice.invoice_number = number
        if "customer" in patch and patch["customer"] is not None:
            invoice.customer = _clean_customer(patch["customer"])
        if patch.get("date") is not None:
            invoice.date = parse_date(patch["date"])
        if patch.get("due_date") is not None:
            invoice.due_date = parse_date(patch["due_date"], "due_date")
        _check_due_date(invoice.date, invoice.due_date)

        explicit_amount = patch.get("amount")
        if explicit_amount is not None:
            invoice.amount = require_amount("amount", explicit_amount)

        uow.invoices.update(invoice)
        if replace_items:
            # Remplacement complet, pas de diff.
            uow.invoices.delete_items(invoice_id)
            uow.invoices.add_items(invoice_id, new_items)
            if explicit_amount is None:
                _refresh_amount(uow, invoice_id)
        updated = uow.invoices.get_by_id(invoice_id)
        uow.commit()

    logger.info("Invoice %s updated, amount=%s", invoice_id, updated.amount)
    return updated


def mark_invoice_paid(invoice_id: int) -> Invoice:
    with _unit_of_work() as uow:
        invoice = uow.invoices.get_by_id(invoice_id, for_update=True)
        if invoice is None:
            raise InvoiceNotFound(invoice_id)
        if invoice.is_paid:
            raise InvoiceAlreadyPaid(invoice_id)
        invoice.status = "paid"
        updated = uow.invoices.update(invoice)
        uow.commit()

    logger.info("Invoice %s marked as paid", invoice_id)
    return updated


def delete_invoice(invoice_id: int) -> None:
    with _unit_of_work() as uow:
        if not uow.invoices.delete(invoice_id):
            raise InvoiceNotFound(invoice_id)
        uow.commit()
    logger.info("Invoice %s deleted", invoice_id)


def add_invoice_item(invoice_id: int, data: Mapping[str, Any]) -> Invoice:
    item = _build_item(data)
    with _unit_of_work() as uow:
        invoice = uow.invoices.get_by_id(invoice_id, for_update=True, with_items=False)
        if invoice is None:
            raise InvoiceNotFound(invoice_id)
        _ensure_unpaid(invoice)
        uow.invoices.add_item(invoice_id, item)
        _refresh_amount(uow, invoice_id)
        updated = uow.invoices.get_by_id(invoice_id)
        uow.commit()
    logger.info("Item added to invoice %s, amount=%s", invoice_id, updated.amount)
    return updated


def update_invoice_item(item_id: int, patch: Mapping[str, Any]) -> Invoice:
    with _unit_of_work() as uow:
        item = uow.invoices.get_item(item_id)
        if item is None:
            raise InvoiceItemNotFound(item_id)
        invoice = uow.invoices.get_by_id(item.invoice_id, for_update=True, with_items=False)
        if invoice is None:
            raise InvoiceNotFound(item.invoice_id)
        _ensure_unpaid(invoice)

        merged = _build_item(
            {
                "name": patch.get("name") if patch.get("name") is not None else item.name,
                "quantity": patch.get("quantity") if patch.get("quantity") is not None else item.quantity,
                "price": patch.get("price") if patch.get("price") is not None else item.price,
            }
        )
        merged.id = item.id
        merged.invoice_id = item.invoice_id
        uow.invoices.update_item(merged)
        _refresh_amount(uow, invoice.id)
        updated = uow.invoices.get_by_id(invoice.id)
        uow.commit()
    logger.info("Invoice item %s updated, invoice %s amount=%s", item_id, updated.id, updated.amount)
    return updated


def delete_invoice_item(item_id: int) -> Invoice:
    with _unit_of_work() as uow:
        item = uow.invoices.get_item(item_id)
        if item is None:
            raise InvoiceItemNotFound(item_id)
        invoice = uow.invoices.get_by_id(item.invoice_id, for_update=True, with_items=False)
        if invoice is None:
            raise InvoiceNotFound(item.invoice_id)
        _ensure_unpaid(invoice)
        uow.invoices.delete_item(item_id)
        _refresh_amount(uow, invoice.id)
        updated = uow.invoices.get_by_id(invoice.id)
        uow.commit()
    logger.info("Invoice item %s deleted, invoice %s amount=%s", item_id, updated.id, updated.amount)
    return updated
