"""Sale ledger endpoints."""

from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Query, status

from ricemill import reporting, sale_service
from ricemill.errors import LedgerError
from ricemill.repositories.sales import SaleFilters
from ricemill_api.errors import to_http_exception
from ricemill_api.schemas.common import page_payload
from ricemill_api.schemas.sales import (
    InventoryTurnoverRow,
    ProfitabilityPeriod,
    SaleCreate,
    SaleListResponse,
    SaleMonth,
    SaleOut,
    SaleStats,
    SaleUpdate,
)

router = APIRouter(prefix="/sales", tags=["sales"])


@router.get("", response_model=SaleListResponse)
def list_sales(
    purchase_id: int | None = Query(default=None, ge=1),
    start_date: dt.date | None = Query(default=None),
    end_date: dt.date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    sort_by: str = Query(default="date"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
) -> dict:
    filters = SaleFilters(purchase_id=purchase_id, start_date=start_date, end_date=end_date)
    result = sale_service.list_sales(
        filters, page=page, per_page=per_page, sort_by=sort_by, sort_order=sort_order
    )
    return page_payload(result, SaleOut.model_validate)


@router.get("/stats", response_model=SaleStats)
def sale_stats(
    start_date: dt.date | None = Query(default=None),
    end_date: dt.date | None = Query(default=None),
) -> dict:
    return reporting.sale_stats(start_date, end_date)


@router.get("/trends", response_model=list[SaleMonth])
def sale_trends(year: int | None = Query(default=None, ge=2000, le=2100)) -> list[dict]:
    return reporting.sale_monthly_trends(year)


@router.get("/profitability", response_model=list[ProfitabilityPeriod])
def profitability(
    group_by: str = Query(default="month", pattern="^(day|week|month)$"),
    start_date: dt.date | None = Query(default=None),
    end_date: dt.date | None = Query(default=None),
) -> list[dict]:
    try:
        return reporting.profitability_analysis(group_by, start_date, end_date)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.get("/inventory-turnover", response_model=list[InventoryTurnoverRow])
def inventory_turnover() -> list[dict]:
    return reporting.inventory_turnover()


@router.get("/purchase/{purchase_id}", response_model=list[SaleOut])
def sales_by_purchase(purchase_id: int) -> list[SaleOut]:
    try:
        items = sale_service.list_sales_by_purchase(purchase_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return [SaleOut.model_validate(item) for item in items]


@router.get("/{sale_id}", response_model=SaleOut)
def get_sale(sale_id: int) -> SaleOut:
    try:
        return SaleOut.model_validate(sale_service.get_sale(sale_id))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.post("", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def create_sale(payload: SaleCreate) -> SaleOut:
    try:
        created = sale_service.create_sale(payload.model_dump())
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return SaleOut.model_validate(created)


@router.put("/{sale_id}", response_model=SaleOut)
def update_sale(sale_id: int, payload: SaleUpdate) -> SaleOut:
    try:
        updated = sale_service.update_sale(sale_id, payload.model_dump(exclude_unset=True))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return SaleOut.model_validate(updated)


@router.delete("/{sale_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sale(sale_id: int) -> None:
    try:
        sale_service.delete_sale(sale_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
