from decimal import Decimal

import pytest

from ricemill import calculations
from ricemill.errors import InsufficientInventory, ValidationFailed


def test_purchase_total_cost_includes_ancillary_costs():
    total = calculations.purchase_total_cost(
        100,
        50,
        200000,
        extra_weight=0,
        truck_cost=50000,
        labor_cost=20000,
        pellet_cost=0,
    )
    assert total == Decimal("1000070000.00")


def test_purchase_total_cost_counts_extra_weight_per_unit():
    total = calculations.purchase_total_cost(2, "10.5", "3", extra_weight="0.5")
    # 2 * (10.5 + 0.5) * 3
    assert total == Decimal("66.00")


def test_sale_financials_against_purchase():
    basis = calculations.PurchaseBasis(
        total_cost=Decimal("1000070000"), total_weight=Decimal("5000")
    )
    result = calculations.sale_financials(
        quantity=10,
        weight=50,
        extra_weight=0,
        price=2500000,
        pellet=10000,
        fuel=5000,
        labor=8000,
        purchase=basis,
    )

    assert result.sold_weight == Decimal("500.00")
    assert result.revenue == Decimal("1250000000.00")
    assert result.purchase_cost == Decimal("100007000.00")
    assert result.operational_costs == Decimal("23000.00")
    assert result.net_profit == Decimal("1149970000.00")
    assert result.rendement == "10.0%"


def test_sale_without_purchase_has_no_rendement():
    result = calculations.sale_financials(quantity=2, weight=10, price=5, fuel=3)

    assert result.purchase_cost == Decimal("0.00")
    assert result.net_profit == Decimal("97.00")
    assert result.rendement is None


def test_format_rendement_rounds_half_up():
    assert calculations.format_rendement(Decimal("1"), Decimal("3")) == "33.3%"
    assert calculations.format_rendement(Decimal("5"), Decimal("6")) == "83.3%"
    assert calculations.format_rendement(Decimal("1"), Decimal("8")) == "12.5%"


def test_money_rounds_half_up():
    assert calculations.money("2.345") == Decimal("2.35")
    assert calculations.money(None) == Decimal("0.00")


def test_ensure_inventory_available_rejects_oversell():
    with pytest.raises(InsufficientInventory) as excinfo:
        calculations.ensure_inventory_available(
            purchase_id=1,
            purchase_weight=Decimal("5000"),
            already_sold=Decimal("500"),
            requested=Decimal("10000"),
        )

    err = excinfo.value
    assert err.available == Decimal("4500.00")
    assert "Available: 4500.00kg" in err.message
    assert err.to_dict()["kind"] == "business_rule"


def test_ensure_inventory_available_accepts_exact_remaining():
    available = calculations.ensure_inventory_available(
        purchase_id=1,
        purchase_weight=Decimal("100"),
        already_sold=Decimal("40"),
        requested=Decimal("60"),
    )
    assert available == Decimal("60.00")


def test_invoice_amount_sums_item_totals():
    items = [
        {"total": calculations.item_total(10, 300000)},
        {"total": calculations.item_total(10, 4000)},
    ]
    assert calculations.invoice_amount(items) == Decimal("3040000.00")
    assert calculations.invoice_amount([]) == Decimal("0.00")


@pytest.mark.parametrize("value", [0, -1, "abc", 1.5])
def test_require_positive_int_rejects_invalid(value):
    with pytest.raises(ValidationFailed):
        calculations.require_positive_int("quantity", value)


def test_require_amount_enforces_minimum():
    assert calculations.require_amount("price", "0.01", minimum=Decimal("0.01")) == Decimal("0.01")
    with pytest.raises(ValidationFailed):
        calculations.require_amount("price", "0", minimum=Decimal("0.01"))
    with pytest.raises(ValidationFailed):
        calculations.require_amount("price", None)
