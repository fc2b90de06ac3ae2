"""Registre des ventes (Sale Ledger).

Une vente rattachée à un achat consomme du poids sur cet achat. Avant toute
écriture on vérifie, dans la même transaction, que la somme des poids vendus
(vente courante exclue lors d'une mise à jour) ne dépasse pas le poids total
de l'achat. Sur PostgreSQL la ligne de l'achat est verrouillée (FOR UPDATE)
pour sérialiser les ventes concurrentes sur un même lot.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping

from .calculations import (
    PurchaseBasis,
    ensure_inventory_available,
    require_amount,
    require_positive_int,
    sale_financials,
)
from .data_repository import get_engine
from .errors import InsufficientInventory, PurchaseNotFound, SaleNotFound, ValidationFailed
from .purchase_service import MIN_UNIT_VALUE, parse_date
from .repositories.base import PagedResult, PageRequest, SqlUnitOfWork
from .repositories.sales import Sale, SaleFilters

logger = logging.getLogger(__name__)

_COST_FIELDS = ("extra_weight", "pellet", "fuel", "labor")


def _unit_of_work() -> SqlUnitOfWork:
    return SqlUnitOfWork(get_engine())


def _apply_fields(sale: Sale, data: Mapping[str, Any]) -> None:
    if "date" in data:
        sale.date = parse_date(data["date"])
    if "quantity" in data:
        sale.quantity = require_positive_int("quantity", data["quantity"])
    if "weight" in data:
        sale.weight = require_amount("weight", data["weight"], minimum=MIN_UNIT_VALUE)
    if "price" in data:
        sale.price = require_amount("price", data["price"], minimum=MIN_UNIT_VALUE)
    for key in _COST_FIELDS:
        if key in data:
            raw = data[key]
            setattr(sale, key, require_amount(key, Decimal("0") if raw is None else raw))
    if "purchase_id" in data:
        raw_id = data["purchase_id"]
        sale.purchase_id = int(raw_id) if raw_id is not None else None


def _price_sale(uow: SqlUnitOfWork, sale: Sale) -> None:
    """Contrôle d'inventaire puis calcul de ``net_profit`` / ``rendement``.

    Raises ``PurchaseNotFound`` or ``InsufficientInventory`` before anything
    is written.
    """

    basis = None
    if sale.purchase_id is not None:
        purchase = uow.purchases.get_by_id(sale.purchase_id, for_update=True)
        if purchase is None:
            raise PurchaseNotFound(sale.purchase_id)

        already_sold = uow.sales.sold_weight_for_purchase(purchase.id, exclude_sale_id=sale.id)
        try:
            ensure_inventory_available(
                purchase_id=purchase.id,
                purchase_weight=purchase.total_weight,
                already_sold=already_sold,
                requested=sale.total_weight,
            )
        except InsufficientInventory as exc:
            logger.warning(
                "Sale rejected on purchase %s: available %s, requested %s",
                purchase.id,
                exc.available,
                exc.requested,
            )
            raise
        basis = PurchaseBasis(total_cost=purchase.total_cost, total_weight=purchase.total_weight)

    financials = sale_financials(
        quantity=sale.quantity,
        weight=sale.weight,
        extra_weight=sale.extra_weight,
        price=sale.price,
        pellet=sale.pellet,
        fuel=sale.fuel,
        labor=sale.labor,
        purchase=basis,
    )
    sale.net_profit = financials.net_profit
    sale.rendement = financials.rendement


def create_sale(data: Mapping[str, Any]) -> Sale:
    for required in ("date", "quantity", "weight", "price"):
        if data.get(required) is None:
            raise ValidationFailed(f"{required} is required", field=required)

    sale = Sale(
        id=None,
        date=parse_date(data["date"]),
        quantity=require_positive_int("quantity", data["quantity"]),
        weight=require_amount("weight", data["weight"], minimum=MIN_UNIT_VALUE),
        price=require_amount("price", data["price"], minimum=MIN_UNIT_VALUE),
    )
    _apply_fields(sale, data)

    with _unit_of_work() as uow:
        _price_sale(uow, sale)
        created = uow.sales.add(sale)
        uow.commit()

    logger.info(
        "Sale %s created on purchase %s, net_profit=%s",
        created.id,
        created.purchase_id,
        created.net_profit,
    )
    return created


def get_sale(sale_id: int) -> Sale:
    with _unit_of_work() as uow:
        sale = uow.sales.get_by_id(sale_id)
    if sale is None:
        raise SaleNotFound(sale_id)
    return sale


def list_sales(
    filters: SaleFilters | None = None,
    *,
    page: int = 1,
    per_page: int = 10,
    sort_by: str = "date",
    sort_order: str = "desc",
) -> PagedResult[Sale]:
    request = PageRequest(page=page, per_page=per_page, sort_by=sort_by, sort_order=sort_order)
    with _unit_of_work() as uow:
        return uow.sales.search(request, filters or SaleFilters())


def list_sales_by_purchase(purchase_id: int) -> list[Sale]:
    with _unit_of_work() as uow:
        if uow.purchases.get_by_id(purchase_id) is None:
            raise PurchaseNotFound(purchase_id)
        return list(uow.sales.list_by_purchase(purchase_id))


def update_sale(sale_id: int, patch: Mapping[str, Any]) -> Sale:
    """Les valeurs du patch remplacent l'existant ; le contrôle exclut la vente elle-même."""

    with _unit_of_work() as uow:
        sale = uow.sales.get_by_id(sale_id)
        if sale is None:
            raise SaleNotFound(sale_id)

        _apply_fields(sale, patch)
        _price_sale(uow, sale)
        updated = uow.sales.update(sale)
        uow.commit()

    logger.info("Sale %s updated, net_profit=%s", sale_id, updated.net_profit)
    return updated


def delete_sale(sale_id: int) -> None:
    with _unit_of_work() as uow:
        if not uow.sales.delete(sale_id):
            raise SaleNotFound(sale_id)
        uow.commit()
    logger.info("Sale %s deleted", sale_id)
