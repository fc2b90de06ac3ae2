import pytest

from ricemill import purchase_service, supplier_service
from ricemill.errors import DuplicateSupplierName, SupplierNotFound, ValidationFailed


pytestmark = pytest.mark.usefixtures("ledger_db")


def test_create_supplier_defaults_to_active():
    supplier = supplier_service.create_supplier({"name": "  Rizerie Nord ", "phone": "0700"})

    assert supplier.id is not None
    assert supplier.name == "Rizerie Nord"
    assert supplier.status == "active"
    assert supplier.phone == "0700"


def test_create_supplier_rejects_duplicate_name_case_insensitive():
    supplier_service.create_supplier({"name": "Paddy Co"})

    with pytest.raises(DuplicateSupplierName):
        supplier_service.create_supplier({"name": "paddy co"})


def test_create_supplier_requires_name():
    with pytest.raises(ValidationFailed):
        supplier_service.create_supplier({"name": " "})


def test_update_supplier_keeps_unique_name():
    first = supplier_service.create_supplier({"name": "Alpha"})
    supplier_service.create_supplier({"name": "Beta"})

    with pytest.raises(DuplicateSupplierName):
        supplier_service.update_supplier(first.id, {"name": "Beta"})

    renamed = supplier_service.update_supplier(first.id, {"name": "Alpha", "address": "Dakar"})
    assert renamed.address == "Dakar"


def test_toggle_status_flips_between_active_and_inactive():
    supplier = supplier_service.create_supplier({"name": "Gamma"})

    assert supplier_service.toggle_supplier_status(supplier.id).status == "inactive"
    assert supplier_service.toggle_supplier_status(supplier.id).status == "active"


def test_list_suppliers_filters_and_paginates():
    for name in ("Delta", "Epsilon", "Zeta"):
        supplier_service.create_supplier({"name": name})
    supplier_service.create_supplier({"name": "Eta", "status": "inactive"})

    page = supplier_service.list_suppliers(status="active", per_page=2)
    assert page.total == 3
    assert page.total_pages == 2
    assert page.has_next is True
    assert [s.name for s in page.items] == ["Delta", "Epsilon"]

    found = supplier_service.list_suppliers(search="eta")
    assert {s.name for s in found.items} == {"Zeta", "Eta"}

    assert [s.name for s in supplier_service.list_active_suppliers()] == ["Delta", "Epsilon", "Zeta"]


def test_supplier_stats_percentage():
    supplier_service.create_supplier({"name": "One"})
    supplier_service.create_supplier({"name": "Two"})
    supplier_service.create_supplier({"name": "Three", "status": "inactive"})

    stats = supplier_service.supplier_stats()
    assert stats == {"total": 3, "active": 2, "inactive": 1, "active_percentage": 66.7}


def test_delete_supplier_keeps_purchases_detached():
    supplier = supplier_service.create_supplier({"name": "Omega"})
    purchase = purchase_service.create_purchase(
        {"date": "2024-03-01", "quantity": 1, "weight": 10, "price": 5, "supplier_id": supplier.id}
    )

    supplier_service.delete_supplier(supplier.id)

    with pytest.raises(SupplierNotFound):
        supplier_service.get_supplier(supplier.id)
    kept = purchase_service.get_purchase(purchase.id)
    assert kept.supplier_id is None
    assert kept.supplier == "Omega"
