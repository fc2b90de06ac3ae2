"""Schéma relationnel du moulin (fournisseurs, achats, ventes, factures, utilisateurs).

The alembic revision in ``migrations/versions`` creates the same tables; this
metadata is used to bootstrap empty databases (tests, local SQLite).
"""

from __future__ import annotations

import logging

import sqlalchemy as sa
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

MONEY = sa.Numeric(15, 2)
WEIGHT = sa.Numeric(10, 2)

metadata = sa.MetaData()

suppliers = sa.Table(
    "suppliers",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("name", sa.String(255), nullable=False),
    sa.Column("contact_person", sa.String(255)),
    sa.Column("phone", sa.String(20)),
    sa.Column("email", sa.String(255)),
    sa.Column("address", sa.Text),
    sa.Column("status", sa.String(10), nullable=False, server_default="active"),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.CheckConstraint("status IN ('active', 'inactive')", name="ck_suppliers_status"),
)
sa.Index("uq_suppliers_name_lower", sa.func.lower(suppliers.c.name), unique=True)

purchases = sa.Table(
    "purchases",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("date", sa.Date, nullable=False),
    sa.Column(
        "supplier_id",
        sa.Integer,
        sa.ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
    ),
    sa.Column("supplier", sa.String(255)),
    sa.Column("quantity", sa.Integer, nullable=False),
    sa.Column("weight", WEIGHT, nullable=False),
    sa.Column("extra_weight", WEIGHT, nullable=False, server_default="0"),
    sa.Column("price", MONEY, nullable=False),
    sa.Column("truck_cost", MONEY, nullable=False, server_default="0"),
    sa.Column("labor_cost", MONEY, nullable=False, server_default="0"),
    sa.Column("pellet_cost", MONEY, nullable=False, server_default="0"),
    sa.Column("total_cost", MONEY, nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.CheckConstraint("quantity > 0", name="ck_purchases_quantity"),
)
sa.Index("idx_purchases_date", purchases.c.date)
sa.Index("idx_purchases_supplier_id", purchases.c.supplier_id)

sales = sa.Table(
    "sales",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("date", sa.Date, nullable=False),
    # RESTRICT : une vente ne doit jamais perdre son achat d'origine.
    sa.Column(
        "purchase_id",
        sa.Integer,
        sa.ForeignKey("purchases.id", ondelete="RESTRICT"),
        nullable=True,
    ),
    sa.Column("quantity", sa.Integer, nullable=False),
    sa.Column("weight", WEIGHT, nullable=False),
    sa.Column("extra_weight", WEIGHT, nullable=False, server_default="0"),
    sa.Column("price", MONEY, nullable=False),
    sa.Column("pellet", MONEY, nullable=False, server_default="0"),
    sa.Column("fuel", MONEY, nullable=False, server_default="0"),
    sa.Column("labor", MONEY, nullable=False, server_default="0"),
    sa.Column("net_profit", MONEY),
    sa.Column("rendement", sa.String(10)),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.CheckConstraint("quantity > 0", name="ck_sales_quantity"),
)
sa.Index("idx_sales_date", sales.c.date)
sa.Index("idx_sales_purchase_id", sales.c.purchase_id)

invoices = sa.Table(
    "invoices",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("invoice_number", sa.String(50), nullable=False, unique=True),
    sa.Column("date", sa.Date, nullable=False),
    sa.Column("customer", sa.String(255), nullable=False),
    sa.Column("amount", MONEY, nullable=False, server_default="0"),
    sa.Column("due_date", sa.Date, nullable=False),
    sa.Column("status", sa.String(10), nullable=False, server_default="unpaid"),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.CheckConstraint("status IN ('paid', 'unpaid')", name="ck_invoices_status"),
    sa.CheckConstraint("due_date >= date", name="ck_invoices_due_date"),
)
sa.Index("idx_invoices_status", invoices.c.status)
sa.Index("idx_invoices_due_date", invoices.c.due_date)

invoice_items = sa.Table(
    "invoice_items",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column(
        "invoice_id",
        sa.Integer,
        sa.ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    ),
    sa.Column("name", sa.String(255), nullable=False),
    sa.Column("quantity", sa.Integer, nullable=False),
    sa.Column("price", MONEY, nullable=False),
    sa.Column("total", MONEY, nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.CheckConstraint("quantity > 0", name="ck_invoice_items_quantity"),
)
sa.Index("idx_invoice_items_invoice_id", invoice_items.c.invoice_id)

app_users = sa.Table(
    "app_users",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("username", sa.String(50), nullable=False),
    sa.Column("password_hash", sa.Text, nullable=False),
    sa.Column("role", sa.String(20), nullable=False, server_default="manager"),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
    sa.CheckConstraint("role IN ('admin', 'manager')", name="ck_app_users_role"),
)
sa.Index("uq_app_users_username_lower", sa.func.lower(app_users.c.username), unique=True)


def ensure_schema(engine: Engine) -> None:
    """Crée les tables manquantes (idempotent)."""

    metadata.create_all(engine, checkfirst=True)
    logger.info("Schema ensured on %s", engine.dialect.name)


__all__ = [
    "metadata",
    "suppliers",
    "purchases",
    "sales",
    "invoices",
    "invoice_items",
    "app_users",
    "ensure_schema",
]
