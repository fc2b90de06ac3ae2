import logging
from datetime import date
from decimal import Decimal

import pytest

from ricemill import invoice_service
from ricemill.errors import (
    DuplicateInvoiceNumber,
    InvalidStatusTransition,
    InvoiceAlreadyPaid,
    InvoiceItemNotFound,
    InvoiceNotFound,
    InvoicePaid,
    ValidationFailed,
)
from ricemill.repositories.invoices import InvoiceFilters


def _invoice(**overrides):
    data = {
        "date": "2024-05-02",
        "customer": "Boutique Ndiaye",
        "due_date": "2024-06-01",
        "items": [
            {"name": "Riz brisé", "quantity": 10, "price": 300000},
            {"name": "Son de riz", "quantity": 10, "price": 4000},
        ],
    }
    data.update(overrides)
    return invoice_service.create_invoice(data)


def test_next_invoice_number_starts_each_month_at_one():
    assert invoice_service.next_invoice_number([], date(2024, 5, 2)) == "INV-202405-0001"
    assert (
        invoice_service.next_invoice_number(["INV-202404-0007", "INV-202405-0002"], date(2024, 5, 9))
        == "INV-202405-0003"
    )


@pytest.mark.usefixtures("ledger_db")
class TestInvoiceLedger:
    def test_amount_is_sum_of_items(self):
        invoice = _invoice()

        assert invoice.amount == Decimal("3040000.00")
        assert invoice.invoice_number == "INV-202405-0001"
        assert invoice.status == "unpaid"
        assert [item.total for item in invoice.items] == [Decimal("3000000.00"), Decimal("40000.00")]

    def test_numbers_are_sequential(self):
        _invoice()
        second = _invoice()

        assert second.invoice_number == "INV-202405-0002"
        assert invoice_service.generate_invoice_number(date(2024, 5, 20)) == "INV-202405-0003"

    def test_explicit_amount_and_no_items(self):
        invoice = _invoice(items=[], amount="125.5")
        empty = _invoice(items=[])

        assert invoice.amount == Decimal("125.50")
        assert empty.amount == Decimal("0.00")

    def test_duplicate_number_is_rejected(self):
        _invoice(invoice_number="F-001")

        with pytest.raises(DuplicateInvoiceNumber):
            _invoice(invoice_number="F-001")

    def test_due_date_before_date_is_rejected(self):
        with pytest.raises(ValidationFailed):
            _invoice(due_date="2024-05-01")

    def test_paid_invoice_refuses_item_changes(self):
        invoice = _invoice()
        invoice_service.mark_invoice_paid(invoice.id)

        with pytest.raises(InvoicePaid):
            invoice_service.add_invoice_item(invoice.id, {"name": "Sac", "quantity": 1, "price": 500})
        with pytest.raises(InvoicePaid):
            invoice_service.delete_invoice_item(invoice.items[0].id)

        assert invoice_service.get_invoice(invoice.id).amount == Decimal("3040000.00")

    def test_mark_paid_twice(self):
        invoice = _invoice()

        paid = invoice_service.mark_invoice_paid(invoice.id)
        assert paid.status == "paid"

        with pytest.raises(InvoiceAlreadyPaid):
            invoice_service.mark_invoice_paid(invoice.id)

    def test_paid_cannot_go_back_to_unpaid(self):
        invoice = _invoice()
        invoice_service.mark_invoice_paid(invoice.id)

        with pytest.raises(InvalidStatusTransition):
            invoice_service.update_invoice(invoice.id, {"status": "unpaid"})

    def test_update_replaces_items_and_amount(self):
        invoice = _invoice()

        updated = invoice_service.update_invoice(
            invoice.id, {"items": [{"name": "Paddy", "quantity": 3, "price": "1000.50"}]}
        )

        assert [item.name for item in updated.items] == ["Paddy"]
        assert updated.amount == Decimal("3001.50")

        cleared = invoice_service.update_invoice(invoice.id, {"items": []})
        assert cleared.items == []
        assert cleared.amount == Decimal("0.00")

    def test_update_checks_merged_due_date(self):
        invoice = _invoice()

        with pytest.raises(ValidationFailed):
            invoice_service.update_invoice(invoice.id, {"date": "2024-07-01"})

    def test_item_operations_refresh_amount(self):
        invoice = _invoice()

        after_add = invoice_service.add_invoice_item(invoice.id, {"name": "Sac", "quantity": 2, "price": 500})
        assert after_add.amount == Decimal("3041000.00")

        first_item = after_add.items[0]
        after_update = invoice_service.update_invoice_item(first_item.id, {"quantity": 1})
        assert after_update.amount == Decimal("341000.00")

        after_delete = invoice_service.delete_invoice_item(first_item.id)
        assert after_delete.amount == Decimal("41000.00")

        with pytest.raises(InvoiceItemNotFound):
            invoice_service.delete_invoice_item(first_item.id)

    def test_item_changes_are_logged(self, caplog):
        invoice = _invoice()

        with caplog.at_level(logging.INFO, logger="ricemill.invoice_service"):
            updated = invoice_service.add_invoice_item(
                invoice.id, {"name": "Sac", "quantity": 1, "price": 1000}
            )
            invoice_service.delete_invoice_item(updated.items[-1].id)

        messages = [record.getMessage() for record in caplog.records]
        assert f"Item added to invoice {invoice.id}, amount=3041000.00" in messages
        assert any(message.endswith(f"invoice {invoice.id} amount=3040000.00") for message in messages)

    def test_overdue_and_filters(self):
        late = _invoice(due_date="2024-05-10")
        _invoice(due_date="2024-07-01")
        paid = _invoice(due_date="2024-05-05")
        invoice_service.mark_invoice_paid(paid.id)

        overdue = invoice_service.overdue_invoices(date(2024, 6, 1))
        assert [inv.id for inv in overdue] == [late.id]
        assert overdue[0].days_overdue(date(2024, 6, 1)) == 22

        unpaid = invoice_service.list_invoices(InvoiceFilters(status="unpaid"))
        assert unpaid.total == 2

        found = invoice_service.search_invoices("ndiaye")
        assert len(found) == 3

    def test_delete_invoice_removes_items(self):
        invoice = _invoice()

        invoice_service.delete_invoice(invoice.id)

        with pytest.raises(InvoiceNotFound):
            invoice_service.get_invoice(invoice.id)
        with pytest.raises(InvoiceItemNotFound):
            invoice_service.update_invoice_item(invoice.items[0].id, {"quantity": 2})
