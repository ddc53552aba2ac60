"""Create products and offer tables

Revision ID: 20261019_offers
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers
revision = '20261019_offers'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the product catalog and offer tables"""

    # ====================
    # PRODUCTS TABLE
    # ====================
    op.create_table(
        'products',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('sku', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('collection', sa.String(100), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('moq', sa.Integer, server_default='1', nullable=False),
        sa.Column('status', sa.String(50), server_default='ACTIVE', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )

    op.create_index('ix_products_sku', 'products', ['sku'], unique=True)
    op.create_index('ix_product_category_collection', 'products', ['category', 'collection'])

    # ====================
    # OFFERS TABLE
    # ====================
    op.create_table(
        'offers',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('percent_off', sa.Numeric(5, 2), nullable=True),
        sa.Column('amount_off', sa.Numeric(12, 2), nullable=True),
        sa.Column('free_item_product_id', UUID(as_uuid=True),
                  sa.ForeignKey('products.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('free_item_qty', sa.Integer, nullable=True),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('min_quantity', sa.Integer, server_default='0', nullable=False),
        sa.Column('min_order_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('applies_to_any_qty', sa.Boolean, server_default='false', nullable=False),
        sa.Column('max_per_user', sa.Integer, nullable=True),
        sa.Column('max_total_redemptions', sa.Integer, nullable=True),
        sa.Column('priority', sa.Integer, server_default='0', nullable=False),
        sa.Column('is_stackable', sa.Boolean, server_default='false', nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        sa.Column('created_by_user_id', UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )

    op.create_index('ix_offers_type', 'offers', ['type'])
    op.create_index('ix_offers_window', 'offers', ['starts_at', 'ends_at'])
    op.create_index('ix_offers_active_priority', 'offers', ['is_active', 'priority'])

    # ====================
    # OFFER SCOPE TABLES
    # ====================
    op.create_table(
        'offer_scope_products',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('offer_id', UUID(as_uuid=True),
                  sa.ForeignKey('offers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True),
                  sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('offer_id', 'product_id', name='uq_offer_scope_product'),
    )
    op.create_index('ix_offer_scope_products_offer_id', 'offer_scope_products', ['offer_id'])
    op.create_index('ix_offer_scope_products_product_id', 'offer_scope_products', ['product_id'])

    op.create_table(
        'offer_scope_categories',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('offer_id', UUID(as_uuid=True),
                  sa.ForeignKey('offers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.UniqueConstraint('offer_id', 'category', name='uq_offer_scope_category'),
    )
    op.create_index('ix_offer_scope_categories_offer_id', 'offer_scope_categories', ['offer_id'])
    op.create_index('ix_offer_scope_categories_category', 'offer_scope_categories', ['category'])

    op.create_table(
        'offer_scope_collections',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('offer_id', UUID(as_uuid=True),
                  sa.ForeignKey('offers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('collection', sa.String(100), nullable=False),
        sa.UniqueConstraint('offer_id', 'collection', name='uq_offer_scope_collection'),
    )
    op.create_index('ix_offer_scope_collections_offer_id', 'offer_scope_collections', ['offer_id'])
    op.create_index('ix_offer_scope_collections_collection', 'offer_scope_collections', ['collection'])


def downgrade():
    """Drop offer and product tables"""
    op.drop_table('offer_scope_collections')
    op.drop_table('offer_scope_categories')
    op.drop_table('offer_scope_products')
    op.drop_table('offers')
    op.drop_table('products')
