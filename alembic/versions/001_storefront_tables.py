"""Create purchase, download token and webhook event tables

Revision ID: storefront_001
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'storefront_001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create storefront tables"""

    op.create_table('purchases',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('stripe_session_id', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('amount_total_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_purchases_stripe_session_id'), 'purchases', ['stripe_session_id'], unique=True)
    op.create_index(op.f('ix_purchases_user_id'), 'purchases', ['user_id'], unique=False)

    op.create_table('purchase_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('purchase_id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=128), nullable=False),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('purchase_id', 'product_id', name='uq_purchase_item_product')
    )
    op.create_index('idx_purchase_items_product', 'purchase_items', ['product_id'])

    op.create_table('download_tokens',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('product_id', sa.String(length=128), nullable=False),
        sa.Column('purchase_id', sa.String(length=36), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_download_tokens_token_hash'), 'download_tokens', ['token_hash'], unique=True)
    op.create_index('idx_download_tokens_user_product', 'download_tokens', ['user_id', 'product_id'])

    # Status is stored as a plain string on every dialect
    op.create_table('webhook_events',
        sa.Column('event_id', sa.String(length=255), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('event_id')
    )


def downgrade() -> None:
    """Drop storefront tables"""
    op.drop_table('webhook_events')
    op.drop_index('idx_download_tokens_user_product', table_name='download_tokens')
    op.drop_index(op.f('ix_download_tokens_token_hash'), table_name='download_tokens')
    op.drop_table('download_tokens')
    op.drop_index('idx_purchase_items_product', table_name='purchase_items')
    op.drop_table('purchase_items')
    op.drop_index(op.f('ix_purchases_user_id'), table_name='purchases')
    op.drop_index(op.f('ix_purchases_stripe_session_id'), table_name='purchases')
    op.drop_table('purchases')
