"""
Repository Layer - Clean Architecture pattern for data access.

This module provides:
- Repository protocols per aggregate (suppliers, purchases, sales, invoices, users)
- Concrete SQL implementations using SQLAlchemy Core
- Unit of Work pattern for transaction management
"""

from .base import (
    PagedResult,
    PageRequest,
    SqlUnitOfWork,
)
from .invoices import Invoice, InvoiceFilters, InvoiceItem, InvoiceRepository, SqlInvoiceRepository
from .purchases import (
    InventoryPosition,
    Purchase,
    PurchaseFilters,
    PurchaseRepository,
    SqlPurchaseRepository,
)
from .sales import Sale, SaleFilters, SaleRepository, SqlSaleRepository
from .suppliers import Supplier, SupplierRepository, SqlSupplierRepository
from .users import SqlUserRepository, User, UserRepository

__all__ = [
    # Base
    "SqlUnitOfWork",
    "PagedResult",
    "PageRequest",
    # Suppliers
    "Supplier",
    "SupplierRepository",
    "SqlSupplierRepository",
    # Purchases
    "Purchase",
    "PurchaseFilters",
    "InventoryPosition",
    "PurchaseRepository",
    "SqlPurchaseRepository",
    # Sales
    "Sale",
    "SaleFilters",
    "SaleRepository",
    "SqlSaleRepository",
    # Invoices
    "Invoice",
    "InvoiceItem",
    "InvoiceFilters",
    "InvoiceRepository",
    "SqlInvoiceRepository",
    # Users
    "User",
    "UserRepository",
    "SqlUserRepository",
]
