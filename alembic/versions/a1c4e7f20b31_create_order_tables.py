"""create_order_tables

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2024-01-08

Customers, orders, line items, per-side addresses and customer notes.
orders.shopify_order_id is unique so an order cannot be imported twice.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c4e7f20b31'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ADDRESS_TABLES = ('order_billing_address', 'order_shipping_address')


def _address_columns():
    return [
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False, unique=True, index=True),
        sa.Column('first_name', sa.String(), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(), nullable=False, server_default=''),
        sa.Column('company', sa.String(), nullable=True),
        sa.Column('street1', sa.String(), nullable=False, server_default=''),
        sa.Column('street2', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=False, server_default=''),
        sa.Column('region', sa.String(), nullable=False, server_default=''),
        sa.Column('postcode', sa.String(), nullable=False, server_default=''),
        sa.Column('country', sa.String(), nullable=False, server_default=''),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create the order backend tables."""
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('email', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('billing_addr', sa.JSON(), nullable=True),
        sa.Column('shipping_addr', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=True, index=True),

        # Source reference
        sa.Column('shopify_order_id', sa.String(), nullable=True, unique=True, index=True),
        sa.Column('shopify_order_number', sa.String(), nullable=True),

        sa.Column('purchase_from', sa.String(), nullable=True),
        sa.Column('order_date', sa.Date(), nullable=True, index=True),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('bill_to_name', sa.String(), nullable=True),
        sa.Column('ship_to_name', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False, index=True),
        sa.Column('sku', sa.String(), nullable=False, index=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('qty', sa.Integer(), nullable=False, server_default='1'),
    )

    for table in ADDRESS_TABLES:
        op.create_table(table, *_address_columns())

    op.create_table(
        'order_customer_notes',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False, index=True),
        sa.Column('status', sa.String(), nullable=True, index=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop the order backend tables."""
    op.drop_table('order_customer_notes')
    for table in reversed(ADDRESS_TABLES):
        op.drop_table(table)
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('customers')
