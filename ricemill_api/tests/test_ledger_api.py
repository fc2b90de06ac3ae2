"""End-to-end tests of the ledger endpoints on a SQLite database."""

from __future__ import annotations


PURCHASE = {
    "date": "2024-01-10",
    "quantity": 100,
    "weight": 50,
    "extra_weight": 0,
    "price": 200000,
    "truck_cost": 50000,
    "labor_cost": 20000,
    "pellet_cost": 0,
}


def _create_purchase(client, **overrides):
    response = client.post("/purchases", json={**PURCHASE, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


def _sale_payload(purchase_id, **overrides):
    payload = {
        "date": "2024-01-15",
        "quantity": 10,
        "weight": 50,
        "price": 2500000,
        "pellet": 10000,
        "fuel": 5000,
        "labor": 8000,
        "purchase_id": purchase_id,
    }
    payload.update(overrides)
    return payload


# ============================================================================
# Fournisseurs
# ============================================================================


def test_supplier_crud_flow(authenticated_client):
    created = authenticated_client.post("/suppliers", json={"name": "Coop Sahel", "email": "coop@sahel.sn"})
    assert created.status_code == 201
    supplier_id = created.json()["id"]

    duplicate = authenticated_client.post("/suppliers", json={"name": "coop sahel"})
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["kind"] == "conflict"

    toggled = authenticated_client.patch(f"/suppliers/{supplier_id}/toggle-status")
    assert toggled.json()["status"] == "inactive"

    stats = authenticated_client.get("/suppliers/stats").json()
    assert stats == {"total": 1, "active": 0, "inactive": 1, "active_percentage": 0.0}

    listing = authenticated_client.get("/suppliers", params={"status": "inactive"}).json()
    assert listing["pagination"]["total"] == 1
    assert listing["items"][0]["name"] == "Coop Sahel"

    assert authenticated_client.delete(f"/suppliers/{supplier_id}").status_code == 204
    missing = authenticated_client.get(f"/suppliers/{supplier_id}")
    assert missing.status_code == 404
    assert missing.json()["detail"]["kind"] == "not_found"


def test_supplier_payload_validation(authenticated_client):
    response = authenticated_client.post("/suppliers", json={"name": "X"})
    assert response.status_code == 422


def test_purchase_for_inactive_supplier_is_rejected(authenticated_client):
    supplier = authenticated_client.post(
        "/suppliers", json={"name": "Dormant", "status": "inactive"}
    ).json()

    response = authenticated_client.post("/purchases", json={**PURCHASE, "supplier_id": supplier["id"]})

    assert response.status_code == 400
    assert response.json()["detail"]["supplier_id"] == supplier["id"]


# ============================================================================
# Achats / ventes
# ============================================================================


def test_purchase_and_sales_flow(authenticated_client):
    purchase = _create_purchase(authenticated_client)
    assert purchase["total_cost"] == 1000070000.0
    assert purchase["total_weight"] == 5000.0

    sale = authenticated_client.post("/sales", json=_sale_payload(purchase["id"]))
    assert sale.status_code == 201
    body = sale.json()
    assert body["net_profit"] == 1149970000.0
    assert body["rendement"] == "10.0%"
    assert body["revenue"] == 1250000000.0

    oversell = authenticated_client.post("/sales", json=_sale_payload(purchase["id"], quantity=200))
    assert oversell.status_code == 400
    detail = oversell.json()["detail"]
    assert detail["kind"] == "business_rule"
    assert detail["available"] == 4500.0
    assert "Available: 4500.00kg" in detail["message"]

    blocked = authenticated_client.delete(f"/purchases/{purchase['id']}")
    assert blocked.status_code == 400
    assert "associated sales" in blocked.json()["detail"]["message"]

    inventory = authenticated_client.get("/purchases/inventory").json()
    assert inventory[0]["remaining_weight"] == 4500.0

    by_purchase = authenticated_client.get(f"/sales/purchase/{purchase['id']}").json()
    assert [s["id"] for s in by_purchase] == [body["id"]]


def test_sale_on_unknown_purchase(authenticated_client):
    response = authenticated_client.post("/sales", json=_sale_payload(999))
    assert response.status_code == 404


def test_purchase_update_and_listing(authenticated_client):
    purchase = _create_purchase(authenticated_client, supplier="Awa")

    updated = authenticated_client.put(f"/purchases/{purchase['id']}", json={"truck_cost": 0})
    assert updated.status_code == 200
    assert updated.json()["total_cost"] == 1000020000.0

    listing = authenticated_client.get("/purchases", params={"supplier": "awa", "per_page": 5}).json()
    assert listing["pagination"]["total"] == 1
    assert listing["pagination"]["per_page"] == 5

    found = authenticated_client.get("/purchases/search", params={"q": "aw"}).json()
    assert len(found) == 1


def test_reports_endpoints(authenticated_client):
    purchase = _create_purchase(authenticated_client)
    authenticated_client.post("/sales", json=_sale_payload(purchase["id"]))

    purchase_trends = authenticated_client.get("/purchases/trends", params={"year": 2024}).json()
    assert len(purchase_trends) == 12

    profitability = authenticated_client.get("/sales/profitability", params={"group_by": "day"}).json()
    assert profitability[0]["period"] == "2024-01-15"

    bad_group = authenticated_client.get("/sales/profitability", params={"group_by": "year"})
    assert bad_group.status_code == 422

    dashboard = authenticated_client.get("/reports/dashboard").json()
    assert dashboard["purchases"]["count"] == 1
    assert dashboard["inventory_remaining_weight"] == 4500.0


# ============================================================================
# Factures
# ============================================================================


def test_invoice_flow(authenticated_client):
    payload = {
        "date": "2024-05-02",
        "customer": "Boutique Ndiaye",
        "due_date": "2024-06-01",
        "items": [
            {"name": "Riz brisé", "quantity": 10, "price": 300000},
            {"name": "Son de riz", "quantity": 10, "price": 4000},
        ],
    }
    created = authenticated_client.post("/invoices", json=payload)
    assert created.status_code == 201
    invoice = created.json()
    assert invoice["amount"] == 3040000.0
    assert invoice["invoice_number"] == "INV-202405-0001"

    number = authenticated_client.get("/invoices/generate-number", params={"date": "2024-05-20"}).json()
    assert number == {"invoice_number": "INV-202405-0002"}

    paid = authenticated_client.patch(f"/invoices/{invoice['id']}/pay")
    assert paid.json()["status"] == "paid"
    assert authenticated_client.patch(f"/invoices/{invoice['id']}/pay").status_code == 400

    rejected = authenticated_client.post(
        f"/invoices/{invoice['id']}/items", json={"name": "Sac", "quantity": 1, "price": 100}
    )
    assert rejected.status_code == 400
    assert authenticated_client.get(f"/invoices/{invoice['id']}").json()["amount"] == 3040000.0


def test_invoice_due_date_validation(authenticated_client):
    response = authenticated_client.post(
        "/invoices",
        json={"date": "2024-05-02", "customer": "Client", "due_date": "2024-05-01"},
    )
    assert response.status_code == 422


def test_overdue_and_aging(authenticated_client):
    authenticated_client.post(
        "/invoices",
        json={"date": "2024-01-01", "customer": "Client A", "due_date": "2024-01-31", "amount": 500},
    )

    overdue = authenticated_client.get("/invoices/overdue", params={"as_of": "2024-02-10"}).json()
    assert overdue[0]["days_overdue"] == 10

    aging = authenticated_client.get("/invoices/aging", params={"as_of": "2024-02-10"}).json()
    assert aging["buckets"]["1-30"]["count"] == 1
    assert aging["total_unpaid_amount"] == 500.0


def test_invoice_item_endpoints(authenticated_client):
    invoice = authenticated_client.post(
        "/invoices",
        json={
            "date": "2024-05-02",
            "customer": "Client",
            "due_date": "2024-05-30",
            "items": [{"name": "Riz", "quantity": 2, "price": 100}],
        },
    ).json()

    added = authenticated_client.post(
        f"/invoices/{invoice['id']}/items", json={"name": "Sac", "quantity": 1, "price": 50}
    ).json()
    assert added["amount"] == 250.0

    item_id = added["items"][0]["id"]
    updated = authenticated_client.put(f"/invoices/items/{item_id}", json={"quantity": 1}).json()
    assert updated["amount"] == 150.0

    remaining = authenticated_client.delete(f"/invoices/items/{item_id}").json()
    assert remaining["amount"] == 50.0
    assert authenticated_client.delete(f"/invoices/items/{item_id}").status_code == 404
