"""create_ordering_tables

Revision ID: 20261019_ordering
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '20261019_ordering'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_STATUS = sa.Enum(
    'ORDER_RECEIVED', 'PREPARING', 'READY', 'OUT_FOR_DELIVERY', 'DELIVERED', 'CANCELLED',
    name='orderstatus',
)


def table_exists(table_name):
    """Check if a table exists in the database"""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def index_exists(table_name, index_name):
    """Check if an index exists on a table"""
    bind = op.get_bind()
    inspector = inspect(bind)
    indexes = inspector.get_indexes(table_name)
    return any(idx['name'] == index_name for idx in indexes)


def upgrade():
    # 1. Restaurants
    if not table_exists('restaurants'):
        op.create_table(
            'restaurants',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('delivery_fee', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('minimum_order_amount', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('accepts_delivery', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('accepts_pickup', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('estimated_prep_minutes', sa.Integer(), nullable=False, server_default='20'),
            sa.Column('estimated_delivery_minutes', sa.Integer(), nullable=False, server_default='25'),
            sa.Column('timezone', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        )

    # 2. Menu items and sizes
    if not table_exists('menu_items'):
        op.create_table(
            'menu_items',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('restaurant_id', sa.String(), sa.ForeignKey('restaurants.id'), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('price', sa.Integer(), nullable=False),
            sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        )
    if table_exists('menu_items') and not index_exists('menu_items', 'ix_menu_items_restaurant_id'):
        op.create_index('ix_menu_items_restaurant_id', 'menu_items', ['restaurant_id'])

    if not table_exists('menu_item_sizes'):
        op.create_table(
            'menu_item_sizes',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('menu_item_id', sa.String(), sa.ForeignKey('menu_items.id'), nullable=False),
            sa.Column('size_name', sa.String(), nullable=False),
            sa.Column('price_adjustment', sa.Integer(), nullable=False, server_default='0'),
            sa.UniqueConstraint('menu_item_id', 'size_name', name='uq_menu_item_size'),
        )

    # 3. Discounts
    if not table_exists('discounts'):
        op.create_table(
            'discounts',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('restaurant_id', sa.String(), sa.ForeignKey('restaurants.id'), nullable=False),
            sa.Column('code', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('discount_type', sa.String(), nullable=False),
            sa.Column('value', sa.Numeric(10, 2), nullable=False),
            sa.Column('minimum_order_amount', sa.Integer(), nullable=True),
            sa.Column('excluded_items', sa.JSON(), nullable=False),
            sa.Column('valid_days', sa.JSON(), nullable=False),
            sa.Column('is_one_time_use', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('max_redemptions_per_user', sa.Integer(), nullable=True),
            sa.Column('total_redemption_limit', sa.Integer(), nullable=True),
            sa.Column('current_redemption_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('start_date', sa.DateTime(), nullable=False),
            sa.Column('end_date', sa.DateTime(), nullable=False),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        )
    if table_exists('discounts'):
        if not index_exists('discounts', 'idx_discounts_code'):
            op.create_index('idx_discounts_code', 'discounts', ['code'])
        if not index_exists('discounts', 'idx_discounts_restaurant'):
            op.create_index('idx_discounts_restaurant', 'discounts', ['restaurant_id'])

    # 4. Carts (one per user)
    if not table_exists('carts'):
        op.create_table(
            'carts',
            sa.Column('user_id', sa.String(), primary_key=True),
            sa.Column('restaurant_id', sa.String(), sa.ForeignKey('restaurants.id'), nullable=True),
            sa.Column('order_type', sa.String(), nullable=True),
            sa.Column('delivery_address', sa.JSON(), nullable=True),
            sa.Column('applied_discount_id', sa.String(), sa.ForeignKey('discounts.id'), nullable=True),
            sa.Column('applied_discount', sa.JSON(), nullable=True),
            sa.Column('tip', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('subtotal', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('discount_amount', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('delivery_fee', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('tax', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('grand_total', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        )

    if not table_exists('cart_items'):
        op.create_table(
            'cart_items',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('cart_user_id', sa.String(), sa.ForeignKey('carts.user_id'), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('menu_item_id', sa.String(), sa.ForeignKey('menu_items.id'), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('unit_price', sa.Integer(), nullable=False),
            sa.Column('size_name', sa.String(), nullable=True),
            sa.Column('size_price_adjustment', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('addons', sa.JSON(), nullable=False),
            sa.Column('modifications', sa.JSON(), nullable=False),
            sa.Column('special_instructions', sa.Text(), nullable=True),
            sa.Column('quantity', sa.Integer(), nullable=False),
            sa.Column('item_total', sa.Integer(), nullable=False),
        )
    if table_exists('cart_items') and not index_exists('cart_items', 'ix_cart_items_cart_user_id'):
        op.create_index('ix_cart_items_cart_user_id', 'cart_items', ['cart_user_id'])

    # 5. Orders and their item snapshots
    if not table_exists('orders'):
        op.create_table(
            'orders',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('user_id', sa.String(), nullable=False),
            sa.Column('restaurant_id', sa.String(), sa.ForeignKey('restaurants.id'), nullable=False),
            sa.Column('order_type', sa.String(), nullable=False),
            sa.Column('status', ORDER_STATUS, nullable=False),
            sa.Column('delivery_address', sa.JSON(), nullable=True),
            sa.Column('special_instructions', sa.Text(), nullable=True),
            sa.Column('subtotal', sa.Integer(), nullable=False),
            sa.Column('discount_amount', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('discount_id', sa.String(), sa.ForeignKey('discounts.id'), nullable=True),
            sa.Column('discount_code', sa.String(), nullable=True),
            sa.Column('delivery_fee', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('tax', sa.Integer(), nullable=False),
            sa.Column('tip', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('grand_total', sa.Integer(), nullable=False),
            sa.Column('payment_method_id', sa.String(), nullable=False),
            sa.Column('estimated_ready_at', sa.DateTime(), nullable=True),
            sa.Column('order_received_at', sa.DateTime(), nullable=False),
            sa.Column('preparing_started_at', sa.DateTime(), nullable=True),
            sa.Column('ready_at', sa.DateTime(), nullable=True),
            sa.Column('out_for_delivery_at', sa.DateTime(), nullable=True),
            sa.Column('delivered_at', sa.DateTime(), nullable=True),
            sa.Column('cancelled_at', sa.DateTime(), nullable=True),
            sa.Column('cancellation_reason', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        )
    if table_exists('orders'):
        if not index_exists('orders', 'idx_orders_user'):
            op.create_index('idx_orders_user', 'orders', ['user_id'])
        if not index_exists('orders', 'idx_orders_restaurant'):
            op.create_index('idx_orders_restaurant', 'orders', ['restaurant_id'])

    if not table_exists('order_items'):
        op.create_table(
            'order_items',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('order_id', sa.String(), sa.ForeignKey('orders.id'), nullable=False),
            sa.Column('menu_item_id', sa.String(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('unit_price', sa.Integer(), nullable=False),
            sa.Column('size_name', sa.String(), nullable=True),
            sa.Column('size_price_adjustment', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('addons', sa.JSON(), nullable=False),
            sa.Column('modifications', sa.JSON(), nullable=False),
            sa.Column('special_instructions', sa.Text(), nullable=True),
            sa.Column('quantity', sa.Integer(), nullable=False),
            sa.Column('item_total', sa.Integer(), nullable=False),
        )
    if table_exists('order_items') and not index_exists('order_items', 'ix_order_items_order_id'):
        op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    # 6. Redemptions
    if not table_exists('discount_redemptions'):
        op.create_table(
            'discount_redemptions',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('discount_id', sa.String(), sa.ForeignKey('discounts.id'), nullable=False),
            sa.Column('user_id', sa.String(), nullable=False),
            sa.Column('order_id', sa.String(), sa.ForeignKey('orders.id'), nullable=False),
            sa.Column('discount_amount_applied', sa.Integer(), nullable=False),
            sa.Column('redeemed_at', sa.DateTime(), server_default=sa.func.now()),
        )
    if table_exists('discount_redemptions') and not index_exists('discount_redemptions', 'idx_redemptions_discount_user'):
        op.create_index('idx_redemptions_discount_user', 'discount_redemptions', ['discount_id', 'user_id'])


def downgrade():
    for table in (
        'discount_redemptions', 'order_items', 'orders', 'cart_items', 'carts',
        'discounts', 'menu_item_sizes', 'menu_items', 'restaurants',
    ):
        if table_exists(table):
            op.drop_table(table)
    ORDER_STATUS.drop(op.get_bind(), checkfirst=True)
