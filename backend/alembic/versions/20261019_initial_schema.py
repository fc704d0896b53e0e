"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Creates the marketplace schema: users, catalog with per-seller price/size
tables, carts, addresses, orders with frozen shipping addresses,
shipments, notifications, and the news and schemes listings.

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_users_email', 'users', ['email'])
    op.create_index('idx_users_role', 'users', ['role'])

    op.create_table(
        'addresses',
        sa.Column('address_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('mobile', sa.String(20), nullable=False),
        sa.Column('street_address', sa.String(500), nullable=False),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('state', sa.String(100), nullable=False),
        sa.Column('zip_code', sa.String(10), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_addresses_user', 'addresses', ['user_id'])

    op.create_table(
        'products',
        sa.Column('product_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('seller_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.user_id'), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_products_category', 'products', ['category'])

    op.create_table(
        'product_sellers',
        sa.Column('product_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('products.product_id', ondelete='CASCADE'), primary_key=True),
        sa.Column('seller_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.user_id'), primary_key=True),
        sa.Column('shop_name', sa.String(255), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'price_sizes',
        sa.Column('price_size_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('product_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('products.product_id', ondelete='CASCADE'), nullable=False),
        sa.Column('seller_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.user_id'), nullable=True),
        sa.Column('size', sa.String(50), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('discounted_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='chk_price_size_quantity_non_negative'),
        sa.CheckConstraint('discounted_price <= price', name='chk_price_size_discount'),
        sa.UniqueConstraint('product_id', 'seller_id', 'size', name='uq_price_size_product_seller_size'),
    )
    op.create_index('idx_price_sizes_product_seller', 'price_sizes', ['product_id', 'seller_id'])
    # NULL seller_id is distinct under the unique constraint; one default row per size
    op.create_index(
        'uq_price_size_default_size',
        'price_sizes',
        ['product_id', 'size'],
        unique=True,
        postgresql_where=sa.text('seller_id IS NULL'),
    )

    op.create_table(
        'carts',
        sa.Column('cart_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.user_id'),
                  nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        'cart_items',
        sa.Column('cart_item_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('cart_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('carts.cart_id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('products.product_id', ondelete='CASCADE'), nullable=False),
        sa.Column('seller_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.user_id'), nullable=True),
        sa.Column('size', sa.String(50), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='chk_cart_item_quantity_positive'),
        sa.UniqueConstraint('cart_id', 'product_id', 'seller_id', 'size', name='uq_cart_item_line'),
    )

    op.create_table(
        'orders',
        sa.Column('order_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_method', sa.String(10), nullable=False),
        sa.Column('payment_status', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('address_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('addresses.address_id', ondelete='SET NULL'), nullable=True),
        sa.Column('shipping_address', postgresql.JSONB(), nullable=False),
        sa.Column('payment_link_id', sa.String(64), nullable=True, unique=True),
        sa.Column('payment_link_url', sa.String(500), nullable=True),
        sa.Column('payment_link_status', sa.String(30), nullable=True),
        sa.Column('payment_id', sa.String(64), nullable=True),
        sa.Column('stock_adjusted', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint('total_amount >= 0', name='chk_order_total_non_negative'),
    )
    op.create_index('idx_orders_user_created', 'orders', ['user_id', 'created_at'])
    op.create_index('idx_orders_status', 'orders', ['status'])
    op.create_index('idx_orders_payment_status', 'orders', ['payment_status'])

    op.create_table(
        'order_items',
        sa.Column('order_item_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('orders.order_id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('products.product_id'), nullable=False),
        sa.Column('seller_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('seller_scoped', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('size', sa.String(50), nullable=False),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('discounted_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='chk_order_item_quantity_positive'),
    )
    op.create_index('idx_order_items_seller', 'order_items', ['seller_id'])
    op.create_index('idx_order_items_order', 'order_items', ['order_id'])

    op.create_table(
        'shipments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.order_id'),
                  nullable=False, unique=True),
        sa.Column('state', sa.String(20), nullable=False),
        sa.Column('provider_order_id', sa.String(64), nullable=True),
        sa.Column('shipment_id', sa.String(64), nullable=True, unique=True),
        sa.Column('awb_code', sa.String(64), nullable=True),
        sa.Column('courier_id', sa.Integer(), nullable=True),
        sa.Column('courier_name', sa.String(100), nullable=True),
        sa.Column('pickup_location', sa.String(100), nullable=True),
        sa.Column('provider_status', sa.String(50), nullable=True),
        sa.Column('label_url', sa.String(500), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('raw', postgresql.JSONB(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_shipments_state', 'shipments', ['state'])

    op.create_table(
        'notifications',
        sa.Column('notification_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('type', sa.String(40), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.order_id'), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('data', postgresql.JSONB(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        'idx_notifications_user_read_created',
        'notifications',
        ['user_id', 'is_read', 'created_at'],
    )

    op.create_table(
        'news',
        sa.Column('news_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(300), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('source', sa.String(200), nullable=False),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('link', sa.String(500), nullable=True, unique=True),
        sa.Column('published_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_news_published_at', 'news', ['published_at'])

    op.create_table(
        'schemes',
        sa.Column('scheme_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(300), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('source', sa.String(200), nullable=False),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('link', sa.String(500), nullable=True),
        sa.Column('announced_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_schemes_announced_at', 'schemes', ['announced_at'])


def downgrade() -> None:
    op.drop_table('schemes')
    op.drop_table('news')
    op.drop_table('notifications')
    op.drop_table('shipments')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('cart_items')
    op.drop_table('carts')
    op.drop_table('price_sizes')
    op.drop_table('product_sellers')
    op.drop_table('products')
    op.drop_table('addresses')
    op.drop_table('users')
