"""Registre des achats (Purchase Ledger).

Chaque écriture recalcule ``total_cost`` depuis zéro :

    total_cost = quantity * (weight + extra_weight) * price
                 + truck_cost + labor_cost + pellet_cost
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Mapping

from .calculations import money, purchase_total_cost, require_amount, require_positive_int
from .data_repository import get_engine
from .errors import (
    PurchaseBelowSoldWeight,
    PurchaseHasSales,
    PurchaseNotFound,
    SupplierInactive,
    SupplierNotFound,
    ValidationFailed,
)
from .repositories.base import PagedResult, PageRequest, SqlUnitOfWork, as_date
from .repositories.purchases import InventoryPosition, Purchase, PurchaseFilters

logger = logging.getLogger(__name__)

MIN_UNIT_VALUE = Decimal("0.01")
_COST_FIELDS = ("extra_weight", "truck_cost", "labor_cost", "pellet_cost")


def _unit_of_work() -> SqlUnitOfWork:
    return SqlUnitOfWork(get_engine())


def parse_date(value: Any, field: str = "date") -> date:
    if value is None or value == "":
        raise ValidationFailed(f"{field} is required", field=field)
    try:
        return as_date(value)
    except ValueError as exc:
        raise ValidationFailed(f"{field} must be an ISO date", field=field) from exc


def _resolve_supplier(uow: SqlUnitOfWork, supplier_id: int):
    supplier = uow.suppliers.get_by_id(supplier_id)
    if supplier is None:
        raise SupplierNotFound(supplier_id)
    if not supplier.is_active:
        logger.warning("Purchase rejected: supplier %s is inactive", supplier_id)
        raise SupplierInactive(supplier_id)
    return supplier


def _apply_fields(purchase: Purchase, data: Mapping[str, Any]) -> None:
    """Copie les champs fournis (validés) sur l'entité."""

    if "date" in data:
        purchase.date = parse_date(data["date"])
    if "quantity" in data:
        purchase.quantity = require_positive_int("quantity", data["quantity"])
    if "weight" in data:
        purchase.weight = require_amount("weight", data["weight"], minimum=MIN_UNIT_VALUE)
    if "price" in data:
        purchase.price = require_amount("price", data["price"], minimum=MIN_UNIT_VALUE)
    for key in _COST_FIELDS:
        if key in data:
            raw = data[key]
            setattr(purchase, key, require_amount(key, Decimal("0") if raw is None else raw))
    if "supplier" in data:
        name = str(data["supplier"] or "").strip()
        purchase.supplier = name or None


def _recompute(purchase: Purchase) -> None:
    purchase.total_cost = purchase_total_cost(
        purchase.quantity,
        purchase.weight,
        purchase.price,
        extra_weight=purchase.extra_weight,
        truck_cost=purchase.truck_cost,
        labor_cost=purchase.labor_cost,
        pellet_cost=purchase.pellet_cost,
    )


def create_purchase(data: Mapping[str, Any]) -> Purchase:
    for required in ("date", "quantity", "weight", "price"):
        if data.get(required) is None:
            raise ValidationFailed(f"{required} is required", field=required)

    purchase = Purchase(
        id=None,
        date=parse_date(data["date"]),
        quantity=require_positive_int("quantity", data["quantity"]),
        weight=require_amount("weight", data["weight"], minimum=MIN_UNIT_VALUE),
        price=require_amount("price", data["price"], minimum=MIN_UNIT_VALUE),
    )
    _apply_fields(purchase, data)

    with _unit_of_work() as uow:
        supplier_id = data.get("supplier_id")
        if supplier_id is not None:
            supplier = _resolve_supplier(uow, int(supplier_id))
            purchase.supplier_id = supplier.id
            if not purchase.supplier:
                purchase.supplier = supplier.name

        _recompute(purchase)
        created = uow.purchases.add(purchase)
        uow.commit()

    logger.info("Purchase %s created, total_cost=%s", created.id, created.total_cost)
    return created


def get_purchase(purchase_id: int) -> Purchase:
    with _unit_of_work() as uow:
        purchase = uow.purchases.get_by_id(purchase_id)
    if purchase is None:
        raise PurchaseNotFound(purchase_id)
    return purchase


def list_purchases(
    filters: PurchaseFilters | None = None,
    *,
    page: int = 1,
    per_page: int = 10,
    sort_by: str = "date",
    sort_order: str = "desc",
) -> PagedResult[Purchase]:
    request = PageRequest(page=page, per_page=per_page, sort_by=sort_by, sort_order=sort_order)
    with _unit_of_work() as uow:
        return uow.purchases.search(request, filters or PurchaseFilters())


def list_purchases_by_supplier(supplier_id: int) -> list[Purchase]:
    with _unit_of_work() as uow:
        if uow.suppliers.get_by_id(supplier_id) is None:
            raise SupplierNotFound(supplier_id)
        return list(uow.purchases.list_by_supplier(supplier_id))


def search_purchases(term: str, *, limit: int = 50) -> list[Purchase]:
    if not term or not term.strip():
        raise ValidationFailed("Search term is required", field="q")
    with _unit_of_work() as uow:
        return list(uow.purchases.search_by_supplier_name(term, limit=limit))


def update_purchase(purchase_id: int, patch: Mapping[str, Any]) -> Purchase:
    """Fusionne ``patch`` avec l'achat existant puis recalcule ``total_cost``.

    Le poids total ne peut pas descendre sous le poids déjà vendu.
    """

    with _unit_of_work() as uow:
        purchase = uow.purchases.get_by_id(purchase_id, for_update=True)
        if purchase is None:
            raise PurchaseNotFound(purchase_id)

        if "supplier_id" in patch:
            new_supplier_id = patch["supplier_id"]
            if new_supplier_id is None:
                purchase.supplier_id = None
            elif int(new_supplier_id) != purchase.supplier_id:
                supplier = _resolve_supplier(uow, int(new_supplier_id))
                purchase.supplier_id = supplier.id
                if "supplier" not in patch:
                    purchase.supplier = supplier.name

        _apply_fields(purchase, patch)
        sold = money(uow.sales.sold_weight_for_purchase(purchase_id))
        if purchase.total_weight < sold:
            logger.warning(
                "Purchase %s update rejected: total weight %s below sold %s",
                purchase_id,
                purchase.total_weight,
                sold,
            )
            raise PurchaseBelowSoldWeight(
                available=purchase.total_weight, requested=sold, purchase_id=purchase_id
            )
        _recompute(purchase)
        updated = uow.purchases.update(purchase)
        uow.commit()

    logger.info("Purchase %s updated, total_cost=%s", purchase_id, updated.total_cost)
    return updated


def delete_purchase(purchase_id: int) -> None:
    with _unit_of_work() as uow:
        if uow.purchases.get_by_id(purchase_id, for_update=True) is None:
            raise PurchaseNotFound(purchase_id)
        if uow.purchases.has_sales(purchase_id):
            logger.warning("Purchase %s not deleted: sales still reference it", purchase_id)
            raise PurchaseHasSales(purchase_id)
        uow.purchases.delete(purchase_id)
        uow.commit()
    logger.info("Purchase %s deleted", purchase_id)


def available_inventory() -> list[InventoryPosition]:
    """Achats ayant encore du poids disponible, les plus anciens d'abord."""

    with _unit_of_work() as uow:
        positions = uow.purchases.inventory_positions()
    return [position for position in positions if position.remaining_weight > 0]
