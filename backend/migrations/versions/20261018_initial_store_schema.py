"""Initial store schema: products, cart lines, promotions, customers, checkout

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18

This migration creates:
1. products (stock ledger quantity, perishable kind/expiry)
2. promotional_sales (product or ALL-<prefix> targets)
3. customers and membership_cards (one card per customer, point balance)
4. checkout_transactions and cart_lines (reservations with price snapshots)
5. sales_log (append-only one-line summaries)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. PRODUCTS
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_code', sa.String(length=32), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('brand', sa.String(length=128), nullable=True),
        sa.Column('variant', sa.String(length=128), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('quantity_on_hand', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('expiration_date', sa.Date(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity_on_hand >= 0', name='ck_products_qoh_non_negative'),
        sa.CheckConstraint('price_cents >= 1', name='ck_products_price_positive'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_product_code'), ['product_code'], unique=True)
        batch_op.create_index('ix_products_category', ['category'], unique=False)

    # ==========================================================================
    # 2. PROMOTIONAL SALES
    # ==========================================================================
    op.create_table('promotional_sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('target', sa.String(length=32), nullable=False),
        sa.Column('discount_kind', sa.String(length=16), nullable=False),
        sa.Column('discount_value', sa.Integer(), nullable=False),
        sa.Column('start_at', sa.DateTime(), nullable=False),
        sa.Column('end_at', sa.DateTime(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('promotional_sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_promotional_sales_target'), ['target'], unique=False)
        batch_op.create_index(batch_op.f('ix_promotional_sales_end_at'), ['end_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_promotional_sales_is_active'), ['is_active'], unique=False)

    # ==========================================================================
    # 3. CUSTOMERS AND MEMBERSHIP CARDS
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_code', sa.String(length=32), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('last_name', sa.String(length=128), nullable=False),
        sa.Column('middle_name', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_customers_customer_code'), ['customer_code'], unique=True)

    op.create_table('membership_cards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('card_number', sa.String(length=32), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('points_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('points_balance >= 0', name='ck_membership_cards_points_non_negative'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('customer_id', name='uq_membership_cards_customer'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('membership_cards', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_membership_cards_card_number'), ['card_number'], unique=True)

    # ==========================================================================
    # 4. CHECKOUT TRANSACTIONS AND CART LINES
    # ==========================================================================
    op.create_table('checkout_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('promo_pricing', sa.String(length=16), nullable=False),
        sa.Column('is_senior', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('senior_id', sa.String(length=16), nullable=True),
        sa.Column('subtotal_cents', sa.Integer(), nullable=True),
        sa.Column('vat_cents', sa.Integer(), nullable=True),
        sa.Column('senior_discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('final_total_cents', sa.Integer(), nullable=True),
        sa.Column('points_redeemed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('points_discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('membership_purchased', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('membership_fee_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('amount_paid_cents', sa.Integer(), nullable=True),
        sa.Column('change_cents', sa.Integer(), nullable=True),
        sa.Column('payment_method', sa.String(length=16), nullable=True),
        sa.Column('card_brand', sa.String(length=16), nullable=True),
        sa.Column('card_last4', sa.String(length=4), nullable=True),
        sa.Column('earning_base_cents', sa.Integer(), nullable=True),
        sa.Column('points_credited', sa.Integer(), nullable=True),
        sa.Column('member_card_number', sa.String(length=32), nullable=True),
        sa.Column('points_balance_after', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('totals_computed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('settled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('abandoned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('checkout_transactions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_checkout_transactions_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_checkout_transactions_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index('ix_checkout_transactions_status_created', ['status', 'created_at'], unique=False)

    op.create_table('cart_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('list_price_cents', sa.Integer(), nullable=True),
        sa.Column('unit_price_cents', sa.Integer(), nullable=True),
        sa.Column('line_total_cents', sa.Integer(), nullable=True),
        sa.Column('promotion_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_cart_lines_quantity_positive'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['transaction_id'], ['checkout_transactions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cart_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cart_lines_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cart_lines_transaction_id'), ['transaction_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cart_lines_status'), ['status'], unique=False)

    # ==========================================================================
    # 5. SALES LOG
    # ==========================================================================
    op.create_table('sales_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=True),
        sa.Column('line', sa.String(length=255), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['transaction_id'], ['checkout_transactions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales_log', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_log_transaction_id'), ['transaction_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_log_occurred_at'), ['occurred_at'], unique=False)


def downgrade():
    op.drop_table('sales_log')
    op.drop_table('cart_lines')
    op.drop_table('checkout_transactions')
    op.drop_table('membership_cards')
    op.drop_table('customers')
    op.drop_table('promotional_sales')
    op.drop_table('products')
