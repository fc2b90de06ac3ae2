from datetime import date
from decimal import Decimal

import pytest

from ricemill import purchase_service, sale_service, supplier_service
from ricemill.errors import (
    PurchaseBelowSoldWeight,
    PurchaseHasSales,
    PurchaseNotFound,
    SupplierInactive,
    SupplierNotFound,
    ValidationFailed,
)
from ricemill.repositories.purchases import PurchaseFilters


pytestmark = pytest.mark.usefixtures("ledger_db")


def _purchase(**overrides):
    data = {
        "date": "2024-01-10",
        "quantity": 100,
        "weight": 50,
        "extra_weight": 0,
        "price": 200000,
        "truck_cost": 50000,
        "labor_cost": 20000,
        "pellet_cost": 0,
    }
    data.update(overrides)
    return purchase_service.create_purchase(data)


def test_create_purchase_computes_total_cost():
    purchase = _purchase(supplier="Moussa")

    assert purchase.total_cost == Decimal("1000070000.00")
    assert purchase.total_weight == Decimal("5000.00")
    assert purchase.date == date(2024, 1, 10)


def test_create_purchase_takes_name_from_registry():
    supplier = supplier_service.create_supplier({"name": "Coop Sahel"})

    purchase = _purchase(supplier_id=supplier.id)

    assert purchase.supplier_id == supplier.id
    assert purchase.supplier == "Coop Sahel"


def test_create_purchase_rejects_inactive_supplier():
    supplier = supplier_service.create_supplier({"name": "Dormant", "status": "inactive"})

    with pytest.raises(SupplierInactive):
        _purchase(supplier_id=supplier.id)


def test_create_purchase_rejects_unknown_supplier():
    with pytest.raises(SupplierNotFound):
        _purchase(supplier_id=999)


@pytest.mark.parametrize(
    "field, value",
    [("quantity", 0), ("weight", "0"), ("price", -5), ("date", "not-a-date")],
)
def test_create_purchase_validates_fields(field, value):
    with pytest.raises(ValidationFailed):
        _purchase(**{field: value})


def test_update_purchase_recomputes_total_cost():
    purchase = _purchase()

    updated = purchase_service.update_purchase(purchase.id, {"truck_cost": 0, "quantity": 10})

    # 10 * 50 * 200000 + 20000
    assert updated.total_cost == Decimal("100020000.00")
    assert updated.labor_cost == Decimal("20000.00")


def test_update_purchase_can_detach_supplier():
    supplier = supplier_service.create_supplier({"name": "Detach"})
    purchase = _purchase(supplier_id=supplier.id)

    updated = purchase_service.update_purchase(purchase.id, {"supplier_id": None})

    assert updated.supplier_id is None


def test_delete_purchase_with_sales_is_rejected():
    purchase = _purchase()
    sale_service.create_sale(
        {"date": "2024-01-12", "quantity": 10, "weight": 50, "price": 2500000, "purchase_id": purchase.id}
    )

    with pytest.raises(PurchaseHasSales) as excinfo:
        purchase_service.delete_purchase(purchase.id)

    assert "associated sales" in excinfo.value.message
    assert purchase_service.get_purchase(purchase.id).id == purchase.id


def test_update_purchase_cannot_drop_below_sold_weight():
    purchase = _purchase()
    sale_service.create_sale(
        {"date": "2024-01-12", "quantity": 90, "weight": 50, "price": 2500000, "purchase_id": purchase.id}
    )

    with pytest.raises(PurchaseBelowSoldWeight) as excinfo:
        purchase_service.update_purchase(purchase.id, {"quantity": 10})

    assert excinfo.value.available == Decimal("500.00")
    assert excinfo.value.requested == Decimal("4500.00")
    unchanged = purchase_service.get_purchase(purchase.id)
    assert unchanged.quantity == 100
    assert unchanged.total_cost == Decimal("1000070000.00")

    shrunk = purchase_service.update_purchase(purchase.id, {"quantity": 90})
    assert shrunk.total_weight == Decimal("4500.00")


def test_delete_purchase_without_sales():
    purchase = _purchase()

    purchase_service.delete_purchase(purchase.id)

    with pytest.raises(PurchaseNotFound):
        purchase_service.get_purchase(purchase.id)


def test_list_purchases_filters_by_date_and_cost():
    _purchase(date="2024-01-05", quantity=1, weight=10, price=10, truck_cost=0, labor_cost=0)
    _purchase(date="2024-02-05", quantity=1, weight=10, price=100, truck_cost=0, labor_cost=0)
    _purchase(date="2024-03-05", quantity=1, weight=10, price=1000, truck_cost=0, labor_cost=0)

    result = purchase_service.list_purchases(
        PurchaseFilters(start_date=date(2024, 2, 1), min_total_cost=Decimal("500"))
    )

    assert result.total == 2
    assert [p.date.month for p in result.items] == [3, 2]


def test_search_purchases_by_supplier_name():
    _purchase(supplier="Awa Diallo")
    _purchase(supplier="Ibrahima")

    found = purchase_service.search_purchases("diallo")

    assert [p.supplier for p in found] == ["Awa Diallo"]


def test_available_inventory_hides_exhausted_purchases():
    open_lot = _purchase(quantity=10, weight=10)
    sold_out = _purchase(quantity=1, weight=10)
    sale_service.create_sale(
        {"date": "2024-01-11", "quantity": 1, "weight": 10, "price": 1, "purchase_id": sold_out.id}
    )
    sale_service.create_sale(
        {"date": "2024-01-11", "quantity": 4, "weight": 10, "price": 1, "purchase_id": open_lot.id}
    )

    positions = purchase_service.available_inventory()

    assert [p.purchase.id for p in positions] == [open_lot.id]
    assert positions[0].remaining_weight == Decimal("60.00")
    assert positions[0].sales_count == 1
