"""Supplier registry endpoints."""

from __future__ import annotations


from fastapi import APIRouter, Query, status

from ricemill import supplier_service
from ricemill.errors import LedgerError
from ricemill_api.errors import to_http_exception
from ricemill_api.schemas.common import page_payload
from ricemill_api.schemas.suppliers import (
    SupplierCreate,
    SupplierListResponse,
    SupplierOut,
    SupplierStats,
    SupplierUpdate,
)

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


@router.get("", response_model=SupplierListResponse)
def list_suppliers(
    search: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status", pattern="^(active|inactive)$"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    sort_by: str = Query(default="name"),
    sort_order: str = Query(default="asc", pattern="^(asc|desc)$"),
) -> dict:
    result = supplier_service.list_suppliers(
        search=search,
        status=status_filter,
        page=page,
        per_page=per_page,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return page_payload(result, SupplierOut.model_validate)


@router.get("/active", response_model=list[SupplierOut])
def list_active_suppliers() -> list[SupplierOut]:
    return [SupplierOut.model_validate(item) for item in supplier_service.list_active_suppliers()]


@router.get("/stats", response_model=SupplierStats)
def supplier_stats() -> dict:
    return supplier_service.supplier_stats()


@router.get("/{supplier_id}", response_model=SupplierOut)
def get_supplier(supplier_id: int) -> SupplierOut:
    try:
        return SupplierOut.model_validate(supplier_service.get_supplier(supplier_id))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.post("", response_model=SupplierOut, status_code=status.HTTP_201_CREATED)
def create_supplier(payload: SupplierCreate) -> SupplierOut:
    try:
        return SupplierOut.model_validate(supplier_service.create_supplier(payload.model_dump()))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{supplier_id}", response_model=SupplierOut)
def update_supplier(supplier_id: int, payload: SupplierUpdate) -> SupplierOut:
    try:
        updated = supplier_service.update_supplier(supplier_id, payload.model_dump(exclude_unset=True))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
    return SupplierOut.model_validate(updated)


@router.patch("/{supplier_id}/toggle-status", response_model=SupplierOut)
def toggle_supplier_status(supplier_id: int) -> SupplierOut:
    try:
        return SupplierOut.model_validate(supplier_service.toggle_supplier_status(supplier_id))
    except LedgerError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(supplier_id: int) -> None:
    try:
        supplier_service.delete_supplier(supplier_id)
    except LedgerError as exc:
        raise to_http_exception(exc) from exc
