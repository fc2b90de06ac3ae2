"""Initial rice-mill schema (suppliers, purchases, sales, invoices, users)"""

from alembic import op
import sqlalchemy as sa

revision = '0001_ricemill_schema'
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(15, 2)
WEIGHT = sa.Numeric(10, 2)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('now()')),
    ]


def upgrade():
    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('contact_person', sa.String(255)),
        sa.Column('phone', sa.String(20)),
        sa.Column('email', sa.String(255)),
        sa.Column('address', sa.Text),
        sa.Column('status', sa.String(10), nullable=False, server_default='active'),
        *_timestamps(),
        sa.CheckConstraint("status IN ('active', 'inactive')", name='ck_suppliers_status'),
    )
    op.execute("CREATE UNIQUE INDEX IF NOT EXISTS uq_suppliers_name_lower ON suppliers (lower(name))")

    op.create_table(
        'purchases',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('supplier_id', sa.Integer, sa.ForeignKey('suppliers.id', ondelete='SET NULL')),
        sa.Column('supplier', sa.String(255)),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('weight', WEIGHT, nullable=False),
        sa.Column('extra_weight', WEIGHT, nullable=False, server_default='0'),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('truck_cost', MONEY, nullable=False, server_default='0'),
        sa.Column('labor_cost', MONEY, nullable=False, server_default='0'),
        sa.Column('pellet_cost', MONEY, nullable=False, server_default='0'),
        sa.Column('total_cost', MONEY, nullable=False, server_default='0'),
        *_timestamps(),
        sa.CheckConstraint('quantity > 0', name='ck_purchases_quantity'),
    )
    op.create_index('idx_purchases_date', 'purchases', ['date'])
    op.create_index('idx_purchases_supplier_id', 'purchases', ['supplier_id'])

    op.create_table(
        'sales',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('purchase_id', sa.Integer, sa.ForeignKey('purchases.id', ondelete='RESTRICT')),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('weight', WEIGHT, nullable=False),
        sa.Column('extra_weight', WEIGHT, nullable=False, server_default='0'),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('pellet', MONEY, nullable=False, server_default='0'),
        sa.Column('fuel', MONEY, nullable=False, server_default='0'),
        sa.Column('labor', MONEY, nullable=False, server_default='0'),
        sa.Column('net_profit', MONEY),
        sa.Column('rendement', sa.String(10)),
        *_timestamps(),
        sa.CheckConstraint('quantity > 0', name='ck_sales_quantity'),
    )
    op.create_index('idx_sales_date', 'sales', ['date'])
    op.create_index('idx_sales_purchase_id', 'sales', ['purchase_id'])

    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('invoice_number', sa.String(50), nullable=False, unique=True),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('customer', sa.String(255), nullable=False),
        sa.Column('amount', MONEY, nullable=False, server_default='0'),
        sa.Column('due_date', sa.Date, nullable=False),
        sa.Column('status', sa.String(10), nullable=False, server_default='unpaid'),
        *_timestamps(),
        sa.CheckConstraint("status IN ('paid', 'unpaid')", name='ck_invoices_status'),
        sa.CheckConstraint('due_date >= date', name='ck_invoices_due_date'),
    )
    op.create_index('idx_invoices_status', 'invoices', ['status'])
    op.create_index('idx_invoices_due_date', 'invoices', ['due_date'])

    op.create_table(
        'invoice_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column(
            'invoice_id',
            sa.Integer,
            sa.ForeignKey('invoices.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('total', MONEY, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('quantity > 0', name='ck_invoice_items_quantity'),
    )
    op.create_index('idx_invoice_items_invoice_id', 'invoice_items', ['invoice_id'])

    op.create_table(
        'app_users',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('password_hash', sa.Text, nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='manager'),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'manager')", name='ck_app_users_role'),
    )
    op.execute("CREATE UNIQUE INDEX IF NOT EXISTS uq_app_users_username_lower ON app_users (lower(username))")


def downgrade():
    op.drop_table('app_users')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
    op.drop_table('sales')
    op.drop_table('purchases')
    op.drop_table('suppliers')
