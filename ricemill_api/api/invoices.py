"""Invoice ledger endpoints, including line items and receivables reports."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from fastapi import APIRouter, Query, status

from ricemill import invoice_service, reporting
from ricemill.errors import LedgerError
from ricemill.repositories.invoices import InvoiceFilters
from ricemill_api.errors import to_http_exception
from ricemill_api.schemas.common import page_payload
from ricemill_api.schemas.invoices import (
    AgingReport,
    InvoiceCreate,
    InvoiceItemCreate,
    InvoiceItemUpdate,
    InvoiceListResponse,
    InvoiceMonth,
    InvoiceNumberResponse,
    InvoiceOut,
    InvoiceStats,
    InvoiceUpdate,
    OverdueInvoiceOut,
)

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=InvoiceListResponse)
def list_invoices(
    customer: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status", pattern="^(paid|unpaid)$"),
    start_date: dt.date | None = Query(default=None),
    end_date: dt.date | None = Query(default=None),
    min_amount: Decimal | None = Query(default=None, ge=0),
    max_amount: Decimal | None = Query(default=None, ge=0),
    overdue: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    sort_by: str = Query(default="date"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
) -> dict:
    filters = InvoiceFilters(
        customer=customer,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
        overdue=overdue,
    )
    try:
        result = invoice_service.list_invoices(
            filters, page=page, per_page=per_page, sort_by=sort_by, sort_order=sort_order
        )
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return page_payload(result, InvoiceOut.model_validate)


@router.get("/overdue", response_model=list[OverdueInvoiceOut])
def overdue_invoices(as_of: dt.date | None = Query(default=None)) -> list[OverdueInvoiceOut]:
    as_of = as_of or dt.date.today()
    return [
        OverdueInvoiceOut(
            **InvoiceOut.model_validate(invoice).model_dump(),
            days_overdue=invoice.days_overdue(as_of),
        )
        for invoice in invoice_service.overdue_invoices(as_of)
    ]


@router.get("/stats", response_model=InvoiceStats)
def invoice_stats(
    start_date: dt.date | None = Query(default=None),
    end_date: dt.date | None = Query(default=None),
) -> dict:
    return reporting.invoice_stats(start_date, end_date)


@router.get("/trends", response_model=list[InvoiceMonth])
def invoice_trends(year: int | None = Query(default=None, ge=2000, le=2100)) -> list[dict]:
    return reporting.invoice_monthly_trends(year)


@router.get("/aging", response_model=AgingReport)
def aging_report(as_of: dt.date | None = Query(default=None)) -> dict:
    return reporting.aging_report(as_of)


@router.get("/search", response_model=list[InvoiceOut])
def search_invoices(q: str = Query(..., min_length=1)) -> list[InvoiceOut]:
    try:
        return [InvoiceOut.model_validate(item) for item in invoice_service.search_invoices(q)]
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.get("/generate-number", response_model=InvoiceNumberResponse)
def generate_number(on_date: dt.date | None = Query(default=None, alias="date")) -> InvoiceNumberResponse:
    return InvoiceNumberResponse(invoice_number=invoice_service.generate_invoice_number(on_date))


@router.put("/items/{item_id}", response_model=InvoiceOut)
def update_item(item_id: int, payload: InvoiceItemUpdate) -> InvoiceOut:
    try:
        invoice = invoice_service.update_invoice_item(item_id, payload.model_dump(exclude_unset=True))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return InvoiceOut.model_validate(invoice)


@router.delete("/items/{item_id}", response_model=InvoiceOut)
def delete_item(item_id: int) -> InvoiceOut:
    try:
        return InvoiceOut.model_validate(invoice_service.delete_invoice_item(item_id))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(invoice_id: int) -> InvoiceOut:
    try:
        return InvoiceOut.model_validate(invoice_service.get_invoice(invoice_id))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.post("", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
def create_invoice(payload: InvoiceCreate) -> InvoiceOut:
    try:
        created = invoice_service.create_invoice(payload.model_dump())
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return InvoiceOut.model_validate(created)


@router.put("/{invoice_id}", response_model=InvoiceOut)
def update_invoice(invoice_id: int, payload: InvoiceUpdate) -> InvoiceOut:
    try:
        updated = invoice_service.update_invoice(invoice_id, payload.model_dump(exclude_unset=True))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return InvoiceOut.model_validate(updated)


@router.patch("/{invoice_id}/pay", response_model=InvoiceOut)
def mark_paid(invoice_id: int) -> InvoiceOut:
    try:
        return InvoiceOut.model_validate(invoice_service.mark_invoice_paid(invoice_id))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{invoice_id}/items", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
def add_item(invoice_id: int, payload: InvoiceItemCreate) -> InvoiceOut:
    try:
        invoice = invoice_service.add_invoice_item(invoice_id, payload.model_dump())
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return InvoiceOut.model_validate(invoice)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(invoice_id: int) -> None:
    try:
        invoice_service.delete_invoice(invoice_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
