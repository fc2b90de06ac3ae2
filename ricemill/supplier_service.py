"""Registre fournisseurs : CRUD, statut actif/inactif et statistiques."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import exc as sa_exc

from .data_repository import get_engine
from .errors import DuplicateSupplierName, SupplierNotFound, ValidationFailed
from .repositories.base import PagedResult, PageRequest, SqlUnitOfWork
from .repositories.suppliers import SUPPLIER_STATUSES, Supplier

logger = logging.getLogger(__name__)

_OPTIONAL_FIELDS = ("contact_person", "phone", "email", "address")


def _unit_of_work() -> SqlUnitOfWork:
    return SqlUnitOfWork(get_engine())


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _clean_name(value: Any) -> str:
    name = _clean_text(value)
    if not name or len(name) < 2:
        raise ValidationFailed("Supplier name must be at least 2 characters long", field="name")
    if len(name) > 255:
        raise ValidationFailed("Supplier name cannot exceed 255 characters", field="name")
    return name


def _clean_status(value: Any) -> str:
    status = (str(value or "active")).strip().lower()
    if status not in SUPPLIER_STATUSES:
        raise ValidationFailed(
            f"Status must be one of {', '.join(SUPPLIER_STATUSES)}", field="status"
        )
    return status


def create_supplier(data: Mapping[str, Any]) -> Supplier:
    name = _clean_name(data.get("name"))
    supplier = Supplier(
        id=None,
        name=name,
        status=_clean_status(data.get("status")),
        **{key: _clean_text(data.get(key)) for key in _OPTIONAL_FIELDS},
    )
    try:
        with _unit_of_work() as uow:
            if uow.suppliers.get_by_name(name) is not None:
                raise DuplicateSupplierName(name)
            created = uow.suppliers.add(supplier)
            uow.commit()
    except sa_exc.IntegrityError as exc:
        raise DuplicateSupplierName(name) from exc

    logger.info("Supplier %s created (%s)", created.id, created.name)
    return created


def get_supplier(supplier_id: int) -> Supplier:
    with _unit_of_work() as uow:
        supplier = uow.suppliers.get_by_id(supplier_id)
    if supplier is None:
        raise SupplierNotFound(supplier_id)
    return supplier


def list_suppliers(
    *,
    search: str | None = None,
    status: str | None = None,
    page: int = 1,
    per_page: int = 10,
    sort_by: str = "name",
    sort_order: str = "asc",
) -> PagedResult[Supplier]:
    if status is not None:
        status = _clean_status(status)
    request = PageRequest(page=page, per_page=per_page, sort_by=sort_by, sort_order=sort_order)
    with _unit_of_work() as uow:
        return uow.suppliers.search(request, term=search, status=status)


def list_active_suppliers() -> list[Supplier]:
    with _unit_of_work() as uow:
        return list(uow.suppliers.list_active())


def update_supplier(supplier_id: int, patch: Mapping[str, Any]) -> Supplier:
    try:
        with _unit_of_work() as uow:
            supplier = uow.suppliers.get_by_id(supplier_id)
            if supplier is None:
                raise SupplierNotFound(supplier_id)

            if "name" in patch:
                name = _clean_name(patch["name"])
                if uow.suppliers.get_by_name(name, exclude_id=supplier_id) is not None:
                    raise DuplicateSupplierName(name)
                supplier.name = name
            if "status" in patch:
                supplier.status = _clean_status(patch["status"])
            for key in _OPTIONAL_FIELDS:
                if key in patch:
                    setattr(supplier, key, _clean_text(patch[key]))

            updated = uow.suppliers.update(supplier)
            uow.commit()
    except sa_exc.IntegrityError as exc:
        raise DuplicateSupplierName(str(patch.get("name", ""))) from exc

    logger.info("Supplier %s updated", supplier_id)
    return updated


def toggle_supplier_status(supplier_id: int) -> Supplier:
    with _unit_of_work() as uow:
        supplier = uow.suppliers.get_by_id(supplier_id)
        if supplier is None:
            raise SupplierNotFound(supplier_id)
        supplier.status = "inactive" if supplier.is_active else "active"
        updated = uow.suppliers.update(supplier)
        uow.commit()

    logger.info("Supplier %s is now %s", supplier_id, updated.status)
    return updated


def delete_supplier(supplier_id: int) -> None:
    """Supprime le fournisseur ; ses achats sont conservés sans référence."""

    with _unit_of_work() as uow:
        if uow.suppliers.get_by_id(supplier_id) is None:
            raise SupplierNotFound(supplier_id)
        uow.suppliers.delete(supplier_id)
        uow.commit()
    logger.info("Supplier %s deleted", supplier_id)


def supplier_stats() -> dict[str, Any]:
    with _unit_of_work() as uow:
        counts = uow.suppliers.count_by_status()
    total = sum(counts.values())
    active = counts.get("active", 0)
    return {
        "total": total,
        "active": active,
        "inactive": counts.get("inactive", 0),
        "active_percentage": round(active / total * 100, 1) if total else 0.0,
    }
