"""add_menu_item_addons

Revision ID: 20261020_addons
Revises: 20261019_ordering
Create Date: 2026-10-20

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '20261020_addons'
down_revision: Union[str, Sequence[str], None] = '20261019_ordering'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name):
    """Check if a table exists in the database"""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade():
    if not table_exists('menu_item_addons'):
        op.create_table(
            'menu_item_addons',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('menu_item_id', sa.String(), sa.ForeignKey('menu_items.id'), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('kind', sa.String(), nullable=False, server_default='addon'),
            sa.Column('price', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
            sa.UniqueConstraint('menu_item_id', 'kind', 'name', name='uq_menu_item_addon'),
        )
        op.create_index('ix_menu_item_addons_menu_item_id', 'menu_item_addons', ['menu_item_id'])


def downgrade():
    if table_exists('menu_item_addons'):
        op.drop_index('ix_menu_item_addons_menu_item_id', table_name='menu_item_addons')
        op.drop_table('menu_item_addons')
