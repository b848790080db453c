"""Create categories, attributes, assets and plugin state tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the import plugin schema."""
    op.create_table(
        'categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        # NULL = user-created, non-NULL = managed by an import plugin
        sa.Column('plugin_id', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('plugin_id', name='uq_categories_plugin_id')
    )

    op.create_table(
        'attributes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('data_type', sa.String(length=20), nullable=False),
        # NULL = user-defined, non-NULL = owned by an import plugin
        sa.Column('plugin_id', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key', name='uq_attributes_key'),
        sa.CheckConstraint(
            "data_type IN ('string', 'text', 'number', 'boolean', 'date')",
            name='ck_attributes_data_type',
        )
    )
    op.create_index('ix_attributes_plugin_id', 'attributes', ['plugin_id'])

    op.create_table(
        'category_attributes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=False),
        sa.Column('attribute_id', sa.Uuid(), nullable=False),
        sa.Column('required', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('sort_order', sa.Integer(), server_default='0', nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['attribute_id'], ['attributes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('category_id', 'attribute_id', name='uq_category_attributes')
    )
    op.create_index('ix_category_attributes_category_id', 'category_attributes', ['category_id'])
    op.create_index('ix_category_attributes_attribute_id', 'category_attributes', ['attribute_id'])

    op.create_table(
        'assets',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=1000), nullable=True),
        sa.Column('quantity', sa.Integer(), server_default='1', nullable=False),
        sa.Column('attributes', sa.JSON(), nullable=False),
        sa.Column('import_plugin_id', sa.String(length=50), nullable=True),
        sa.Column('import_external_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_assets_quantity'),
        sa.CheckConstraint(
            '(import_plugin_id IS NULL) = (import_external_id IS NULL)',
            name='ck_assets_import_provenance',
        )
    )
    op.create_index('ix_assets_category_id', 'assets', ['category_id'])
    op.create_index('idx_assets_import_source', 'assets', ['import_plugin_id', 'import_external_id'])

    op.create_table(
        'plugin_states',
        sa.Column('plugin_id', sa.String(length=50), nullable=False),
        sa.Column('enabled', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('plugin_id')
    )


def downgrade() -> None:
    """Drop the import plugin schema."""
    op.drop_table('plugin_states')
    op.drop_index('idx_assets_import_source', table_name='assets')
    op.drop_index('ix_assets_category_id', table_name='assets')
    op.drop_table('assets')
    op.drop_index('ix_category_attributes_attribute_id', table_name='category_attributes')
    op.drop_index('ix_category_attributes_category_id', table_name='category_attributes')
    op.drop_table('category_attributes')
    op.drop_index('ix_attributes_plugin_id', table_name='attributes')
    op.drop_table('attributes')
    op.drop_table('categories')
