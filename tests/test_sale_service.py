from decimal import Decimal

import pytest

from ricemill import purchase_service, sale_service
from ricemill.errors import InsufficientInventory, PurchaseNotFound, SaleNotFound


pytestmark = pytest.mark.usefixtures("ledger_db")


@pytest.fixture
def purchase():
    return purchase_service.create_purchase(
        {
            "date": "2024-01-10",
            "quantity": 100,
            "weight": 50,
            "extra_weight": 0,
            "price": 200000,
            "truck_cost": 50000,
            "labor_cost": 20000,
            "pellet_cost": 0,
        }
    )


def _sale(purchase_id, **overrides):
    data = {
        "date": "2024-01-15",
        "quantity": 10,
        "weight": 50,
        "extra_weight": 0,
        "price": 2500000,
        "pellet": 10000,
        "fuel": 5000,
        "labor": 8000,
        "purchase_id": purchase_id,
    }
    data.update(overrides)
    return sale_service.create_sale(data)


def test_create_sale_computes_profit_and_rendement(purchase):
    sale = _sale(purchase.id)

    assert sale.total_weight == Decimal("500.00")
    assert sale.revenue == Decimal("1250000000.00")
    assert sale.operational_costs == Decimal("23000.00")
    assert sale.net_profit == Decimal("1149970000.00")
    assert sale.rendement == "10.0%"


def test_oversell_is_rejected_and_nothing_written(purchase):
    _sale(purchase.id)

    with pytest.raises(InsufficientInventory) as excinfo:
        _sale(purchase.id, quantity=200)

    assert excinfo.value.available == Decimal("4500.00")
    assert excinfo.value.requested == Decimal("10000.00")
    assert len(sale_service.list_sales_by_purchase(purchase.id)) == 1


def test_sale_on_missing_purchase_is_rejected():
    with pytest.raises(PurchaseNotFound):
        _sale(12345)


def test_sale_without_purchase_keeps_rendement_empty():
    sale = _sale(None, quantity=1, weight=10, price=100, pellet=0, fuel=0, labor=0)

    assert sale.purchase_id is None
    assert sale.net_profit == Decimal("1000.00")
    assert sale.rendement is None


def test_update_sale_excludes_itself_from_inventory_check(purchase):
    sale = _sale(purchase.id, quantity=90)

    # 100 sacs au total : la vente peut passer de 90 à 100 sans se compter deux fois.
    updated = sale_service.update_sale(sale.id, {"quantity": 100})

    assert updated.total_weight == Decimal("5000.00")
    assert updated.rendement == "100.0%"

    with pytest.raises(InsufficientInventory):
        sale_service.update_sale(sale.id, {"quantity": 101})


def test_update_sale_recomputes_net_profit(purchase):
    sale = _sale(purchase.id)

    updated = sale_service.update_sale(sale.id, {"fuel": 0})

    assert updated.net_profit == Decimal("1149975000.00")


def test_delete_sale_frees_inventory(purchase):
    sale = _sale(purchase.id, quantity=100)

    sale_service.delete_sale(sale.id)

    with pytest.raises(SaleNotFound):
        sale_service.get_sale(sale.id)
    assert _sale(purchase.id, quantity=100).id is not None


def test_list_sales_by_unknown_purchase():
    with pytest.raises(PurchaseNotFound):
        sale_service.list_sales_by_purchase(777)


def test_extra_weight_counts_on_purchase_and_sale():
    purchase = purchase_service.create_purchase(
        {"date": "2024-02-01", "quantity": 100, "weight": 50, "extra_weight": 1, "price": 200000}
    )
    assert purchase.total_weight == Decimal("5100.00")

    first = _sale(purchase.id, quantity=50, extra_weight=2)
    assert first.total_weight == Decimal("2600.00")
    assert first.rendement == "51.0%"

    # Reste 2500 kg : 49 sacs de 51 kg passent tout juste.
    second = _sale(purchase.id, quantity=49, extra_weight=1)
    assert second.total_weight == Decimal("2499.00")

    with pytest.raises(InsufficientInventory) as excinfo:
        _sale(purchase.id, quantity=1, weight=1, extra_weight="0.5")

    assert excinfo.value.available == Decimal("1.00")
    assert excinfo.value.requested == Decimal("1.50")


def test_update_sale_moves_to_another_purchase(purchase):
    other = purchase_service.create_purchase(
        {"date": "2024-01-20", "quantity": 20, "weight": 50, "price": 200000}
    )
    sale = _sale(purchase.id, quantity=30)

    with pytest.raises(InsufficientInventory) as excinfo:
        sale_service.update_sale(sale.id, {"purchase_id": other.id})

    assert excinfo.value.available == Decimal("1000.00")
    assert excinfo.value.purchase_id == other.id
    assert sale_service.get_sale(sale.id).purchase_id == purchase.id

    moved = sale_service.update_sale(sale.id, {"purchase_id": other.id, "quantity": 10})

    assert moved.purchase_id == other.id
    assert moved.rendement == "50.0%"
    assert moved.net_profit == Decimal("1149977000.00")
    assert sale_service.list_sales_by_purchase(purchase.id) == []
    assert [s.id for s in sale_service.list_sales_by_purchase(other.id)] == [sale.id]
