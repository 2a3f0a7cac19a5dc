"""create_payment_sources_and_expenses

Revision ID: 3c4d5e6f7a8b
Revises: 2b3c4d5e6f7a
Create Date: 2026-10-19 09:17:52.690311

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c4d5e6f7a8b'
down_revision = '2b3c4d5e6f7a'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('payment_sources',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=1024), nullable=True),
        sa.Column('account_type', sa.String(length=20), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('initial_balance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('current_balance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('payment_source_transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('payment_source_id', sa.String(length=36), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('description', sa.String(length=1024), nullable=True),
        sa.Column('reference_id', sa.String(length=36), nullable=True),
        sa.Column('reference_type', sa.String(length=30), nullable=True),
        sa.Column('balance_before', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('balance_after', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['payment_source_id'], ['payment_sources.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_source_id', 'sequence', name='uq_payment_source_transactions_source_sequence')
    )
    op.create_index('ix_payment_source_transactions_payment_source_id', 'payment_source_transactions', ['payment_source_id'], unique=False)
    op.create_index('ix_payment_source_transactions_reference_id', 'payment_source_transactions', ['reference_id'], unique=False)
    op.create_table('expenses',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('frequency', sa.String(length=20), nullable=True),
        sa.Column('expense_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('next_due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_method', sa.String(length=30), nullable=False),
        sa.Column('payment_reference', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('attachment_url', sa.String(length=1024), nullable=False),
        sa.Column('attachment_type', sa.String(length=30), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('payment_source_id', sa.String(length=36), nullable=True),
        sa.Column('related_client_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['payment_source_id'], ['payment_sources.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['related_client_id'], ['clients.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_expenses_payment_source_id', 'expenses', ['payment_source_id'], unique=False)
    op.create_table('expense_payments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('expense_id', sa.String(length=36), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('payment_method', sa.String(length=30), nullable=False),
        sa.Column('payment_reference', sa.String(length=255), nullable=True),
        sa.Column('attachment_url', sa.String(length=1024), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('payment_source_transaction_id', sa.String(length=36), nullable=True),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['expense_id'], ['expenses.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['payment_source_transaction_id'], ['payment_source_transactions.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_expense_payments_expense_id', 'expense_payments', ['expense_id'], unique=False)


def downgrade():
    op.drop_index('ix_expense_payments_expense_id', table_name='expense_payments')
    op.drop_table('expense_payments')
    op.drop_index('ix_expenses_payment_source_id', table_name='expenses')
    op.drop_table('expenses')
    op.drop_index('ix_payment_source_transactions_reference_id', table_name='payment_source_transactions')
    op.drop_index('ix_payment_source_transactions_payment_source_id', table_name='payment_source_transactions')
    op.drop_table('payment_source_transactions')
    op.drop_table('payment_sources')
