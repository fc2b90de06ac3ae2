"""Purchase ledger endpoints."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from fastapi import APIRouter, Query, status

from ricemill import purchase_service, reporting
from ricemill.errors import LedgerError
from ricemill.repositories.purchases import PurchaseFilters
from ricemill_api.errors import to_http_exception
from ricemill_api.schemas.common import page_payload
from ricemill_api.schemas.purchases import (
    InventoryPositionOut,
    PurchaseCreate,
    PurchaseListResponse,
    PurchaseMonth,
    PurchaseOut,
    PurchaseStats,
    PurchaseUpdate,
)

router = APIRouter(prefix="/purchases", tags=["purchases"])


@router.get("", response_model=PurchaseListResponse)
def list_purchases(
    supplier: str | None = Query(default=None, description="Filtre sur le nom du fournisseur"),
    supplier_id: int | None = Query(default=None, ge=1),
    start_date: dt.date | None = Query(default=None),
    end_date: dt.date | None = Query(default=None),
    min_total_cost: Decimal | None = Query(default=None, ge=0),
    max_total_cost: Decimal | None = Query(default=None, ge=0),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    sort_by: str = Query(default="date"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
) -> dict:
    filters = PurchaseFilters(
        supplier=supplier,
        supplier_id=supplier_id,
        start_date=start_date,
        end_date=end_date,
        min_total_cost=min_total_cost,
        max_total_cost=max_total_cost,
    )
    result = purchase_service.list_purchases(
        filters, page=page, per_page=per_page, sort_by=sort_by, sort_order=sort_order
    )
    return page_payload(result, PurchaseOut.model_validate)


@router.get("/stats", response_model=PurchaseStats)
def purchase_stats(
    start_date: dt.date | None = Query(default=None),
    end_date: dt.date | None = Query(default=None),
) -> dict:
    return reporting.purchase_stats(start_date, end_date)


@router.get("/trends", response_model=list[PurchaseMonth])
def purchase_trends(year: int | None = Query(default=None, ge=2000, le=2100)) -> list[dict]:
    return reporting.purchase_monthly_trends(year)


@router.get("/search", response_model=list[PurchaseOut])
def search_purchases(q: str = Query(..., min_length=1)) -> list[PurchaseOut]:
    try:
        return [PurchaseOut.model_validate(item) for item in purchase_service.search_purchases(q)]
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.get("/inventory", response_model=list[InventoryPositionOut])
def available_inventory() -> list[InventoryPositionOut]:
    return [
        InventoryPositionOut(
            purchase=PurchaseOut.model_validate(position.purchase),
            sold_weight=float(position.sold_weight),
            remaining_weight=float(position.remaining_weight),
            sales_count=position.sales_count,
        )
        for position in purchase_service.available_inventory()
    ]


@router.get("/supplier/{supplier_id}", response_model=list[PurchaseOut])
def purchases_by_supplier(supplier_id: int) -> list[PurchaseOut]:
    try:
        items = purchase_service.list_purchases_by_supplier(supplier_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return [PurchaseOut.model_validate(item) for item in items]


@router.get("/{purchase_id}", response_model=PurchaseOut)
def get_purchase(purchase_id: int) -> PurchaseOut:
    try:
        return PurchaseOut.model_validate(purchase_service.get_purchase(purchase_id))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.post("", response_model=PurchaseOut, status_code=status.HTTP_201_CREATED)
def create_purchase(payload: PurchaseCreate) -> PurchaseOut:
    try:
        created = purchase_service.create_purchase(payload.model_dump())
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return PurchaseOut.model_validate(created)


@router.put("/{purchase_id}", response_model=PurchaseOut)
def update_purchase(purchase_id: int, payload: PurchaseUpdate) -> PurchaseOut:
    try:
        updated = purchase_service.update_purchase(purchase_id, payload.model_dump(exclude_unset=True))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return PurchaseOut.model_validate(updated)


@router.delete("/{purchase_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_purchase(purchase_id: int) -> None:
    try:
        purchase_service.delete_purchase(purchase_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
