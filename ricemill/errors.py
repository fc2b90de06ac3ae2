"""Typed errors raised by the ledgers.

Each error carries a ``kind`` (``not_found``, ``conflict``, ``validation_failed``,
``business_rule``) plus structured ``details``; the HTTP layer maps the kind to
a status code.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """Base class of every domain error."""

    kind = "business_rule"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "message": self.message}
        for key, value in self.details.items():
            payload[key] = float(value) if isinstance(value, Decimal) else value
        return payload


class NotFoundError(LedgerError):
    kind = "not_found"


class ConflictError(LedgerError):
    kind = "conflict"


class ValidationFailed(LedgerError):
    kind = "validation_failed"


class BusinessRuleViolation(LedgerError):
    kind = "business_rule"


# --- Not found ---


class SupplierNotFound(NotFoundError):
    def __init__(self, supplier_id: int) -> None:
        super().__init__(f"Supplier {supplier_id} not found", supplier_id=supplier_id)


class PurchaseNotFound(NotFoundError):
    def __init__(self, purchase_id: int) -> None:
        super().__init__(f"Purchase {purchase_id} not found", purchase_id=purchase_id)


class SaleNotFound(NotFoundError):
    def __init__(self, sale_id: int) -> None:
        super().__init__(f"Sale {sale_id} not found", sale_id=sale_id)


class InvoiceNotFound(NotFoundError):
    def __init__(self, invoice_id: int) -> None:
        super().__init__(f"Invoice {invoice_id} not found", invoice_id=invoice_id)


class InvoiceItemNotFound(NotFoundError):
    def __init__(self, item_id: int) -> None:
        super().__init__(f"Invoice item {item_id} not found", item_id=item_id)


class UserNotFound(NotFoundError):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found", user_id=user_id)


# --- Business rules ---


class SupplierInactive(BusinessRuleViolation):
    def __init__(self, supplier_id: int) -> None:
        super().__init__(
            "Cannot create purchase for inactive supplier", supplier_id=supplier_id
        )


class PurchaseHasSales(BusinessRuleViolation):
    def __init__(self, purchase_id: int) -> None:
        super().__init__(
            "Cannot delete purchase with associated sales", purchase_id=purchase_id
        )


class InsufficientInventory(BusinessRuleViolation):
    def __init__(self, *, available: Decimal, requested: Decimal, purchase_id: int) -> None:
        super().__init__(
            f"Insufficient inventory. Available: {available:.2f}kg, Requested: {requested:.2f}kg",
            available=available,
            requested=requested,
            purchase_id=purchase_id,
        )
        self.available = available
        self.requested = requested
        self.purchase_id = purchase_id


class PurchaseBelowSoldWeight(BusinessRuleViolation):
    def __init__(self, *, available: Decimal, requested: Decimal, purchase_id: int) -> None:
        super().__init__(
            "Purchase weight cannot drop below the weight already sold. "
            f"Available: {available:.2f}kg, Sold: {requested:.2f}kg",
            available=available,
            requested=requested,
            purchase_id=purchase_id,
        )
        self.available = available
        self.requested = requested
        self.purchase_id = purchase_id


class InvoicePaid(BusinessRuleViolation):
    def __init__(self, invoice_id: int) -> None:
        super().__init__("Cannot modify items of a paid invoice", invoice_id=invoice_id)


class InvoiceAlreadyPaid(BusinessRuleViolation):
    def __init__(self, invoice_id: int) -> None:
        super().__init__("Invoice is already marked as paid", invoice_id=invoice_id)


class InvalidStatusTransition(BusinessRuleViolation):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            f"Invalid status transition: {current} -> {requested}",
            current=current,
            requested=requested,
        )


class LastAdminRemoval(BusinessRuleViolation):
    def __init__(self, user_id: int) -> None:
        super().__init__("Cannot remove the last remaining administrator", user_id=user_id)


class SelfDeletion(BusinessRuleViolation):
    def __init__(self, user_id: int) -> None:
        super().__init__("You cannot delete your own account", user_id=user_id)


# --- Conflicts ---


class DuplicateSupplierName(ConflictError):
    def __init__(self, name: str) -> None:
        super().__init__("Supplier with this name already exists", name=name)


class DuplicateInvoiceNumber(ConflictError):
    def __init__(self, invoice_number: str) -> None:
        super().__init__("Invoice number already exists", invoice_number=invoice_number)


class DuplicateUsername(ConflictError):
    def __init__(self, username: str) -> None:
        super().__init__("Username already exists", username=username)


__all__ = [
    "LedgerError",
    "NotFoundError",
    "ConflictError",
    "ValidationFailed",
    "BusinessRuleViolation",
    "SupplierNotFound",
    "PurchaseNotFound",
    "SaleNotFound",
    "InvoiceNotFound",
    "InvoiceItemNotFound",
    "UserNotFound",
    "SupplierInactive",
    "PurchaseHasSales",
    "InsufficientInventory",
    "PurchaseBelowSoldWeight",
    "InvoicePaid",
    "InvoiceAlreadyPaid",
    "InvalidStatusTransition",
    "LastAdminRemoval",
    "SelfDeletion",
    "DuplicateSupplierName",
    "DuplicateInvoiceNumber",
    "DuplicateUsername",
]
