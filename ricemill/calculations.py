"""Calculs financiers purs (achats, ventes, factures).

Aucune fonction ici ne touche la base : les ledgers les appellent avant
d'écrire, ce qui permet de tester les formules isolément.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from .errors import InsufficientInventory, ValidationFailed

CENT = Decimal("0.01")
TENTH = Decimal("0.1")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _as_decimal(value: Any, default: str = "0") -> Decimal:
    if value is None:
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal(default)


def money(value: Any) -> Decimal:
    """Arrondit au centime (ROUND_HALF_UP)."""
    return _as_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def unit_weight(weight: Any, extra_weight: Any = None) -> Decimal:
    return _as_decimal(weight) + _as_decimal(extra_weight)


def total_weight(quantity: Any, weight: Any, extra_weight: Any = None) -> Decimal:
    """``quantity * (weight + extra_weight)`` pour un achat ou une vente."""
    return _as_decimal(quantity) * unit_weight(weight, extra_weight)


def purchase_total_cost(
    quantity: Any,
    weight: Any,
    price: Any,
    *,
    extra_weight: Any = None,
    truck_cost: Any = None,
    labor_cost: Any = None,
    pellet_cost: Any = None,
) -> Decimal:
    merchandise = total_weight(quantity, weight, extra_weight) * _as_decimal(price)
    ancillary = _as_decimal(truck_cost) + _as_decimal(labor_cost) + _as_decimal(pellet_cost)
    return money(merchandise + ancillary)


def sale_revenue(quantity: Any, weight: Any, price: Any, extra_weight: Any = None) -> Decimal:
    return money(total_weight(quantity, weight, extra_weight) * _as_decimal(price))


def operational_costs(pellet: Any = None, fuel: Any = None, labor: Any = None) -> Decimal:
    return money(_as_decimal(pellet) + _as_decimal(fuel) + _as_decimal(labor))


def format_rendement(sold_weight: Decimal, purchase_weight: Decimal) -> str:
    """Part du poids acheté qui a été vendue, ex. ``"83.3%"``."""
    ratio = _as_decimal(sold_weight) / _as_decimal(purchase_weight) * HUNDRED
    return f"{ratio.quantize(TENTH, rounding=ROUND_HALF_UP)}%"


@dataclass(frozen=True)
class PurchaseBasis:
    """What a sale needs to know about the purchase it draws from."""

    total_cost: Decimal
    total_weight: Decimal


@dataclass(frozen=True)
class SaleFinancials:
    sold_weight: Decimal
    revenue: Decimal
    purchase_cost: Decimal
    operational_costs: Decimal
    net_profit: Decimal
    rendement: str | None


def sale_financials(
    *,
    quantity: Any,
    weight: Any,
    price: Any,
    extra_weight: Any = None,
    pellet: Any = None,
    fuel: Any = None,
    labor: Any = None,
    purchase: PurchaseBasis | None = None,
) -> SaleFinancials:
    sold = total_weight(quantity, weight, extra_weight)
    revenue = sale_revenue(quantity, weight, price, extra_weight)
    op_costs = operational_costs(pellet, fuel, labor)

    purchase_cost = ZERO
    rendement = None
    if purchase is not None and purchase.total_weight > 0:
        proportion = sold / purchase.total_weight
        purchase_cost = _as_decimal(purchase.total_cost) * proportion
        if purchase_cost > 0:
            rendement = format_rendement(sold, purchase.total_weight)

    net_profit = money(revenue - purchase_cost - op_costs)
    return SaleFinancials(
        sold_weight=money(sold),
        revenue=revenue,
        purchase_cost=money(purchase_cost),
        operational_costs=op_costs,
        net_profit=net_profit,
        rendement=rendement,
    )


def ensure_inventory_available(
    *,
    purchase_id: int,
    purchase_weight: Decimal,
    already_sold: Decimal,
    requested: Decimal,
) -> Decimal:
    """Refuse une vente qui dépasserait le poids de l'achat ; retourne le disponible."""

    available = money(_as_decimal(purchase_weight) - _as_decimal(already_sold))
    requested = money(requested)
    if requested > available:
        raise InsufficientInventory(
            available=available, requested=requested, purchase_id=purchase_id
        )
    return available


def item_total(quantity: Any, price: Any) -> Decimal:
    return money(_as_decimal(quantity) * _as_decimal(price))


def invoice_amount(items: Iterable[Any]) -> Decimal:
    """Somme des ``total`` de lignes (objets ou dicts)."""
    total = ZERO
    for item in items:
        value = item.get("total") if isinstance(item, dict) else getattr(item, "total", None)
        total += _as_decimal(value)
    return money(total)


def require_positive_int(field: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationFailed(f"{field} must be an integer", field=field) from exc
    if number <= 0 or number != _as_decimal(value):
        raise ValidationFailed(f"{field} must be a positive integer", field=field)
    return number


def require_amount(field: str, value: Any, *, minimum: Decimal = ZERO) -> Decimal:
    """Contrôle de borne côté core, même si la couche HTTP a déjà validé."""
    if value is None:
        raise ValidationFailed(f"{field} is required", field=field)
    amount = _as_decimal(value, default="NaN")
    if amount.is_nan() or amount < minimum:
        raise ValidationFailed(f"{field} must be >= {minimum}", field=field)
    return money(amount)


__all__ = [
    "CENT",
    "PurchaseBasis",
    "SaleFinancials",
    "money",
    "unit_weight",
    "total_weight",
    "purchase_total_cost",
    "sale_revenue",
    "operational_costs",
    "format_rendement",
    "sale_financials",
    "ensure_inventory_available",
    "item_total",
    "invoice_amount",
    "require_positive_int",
    "require_amount",
]
