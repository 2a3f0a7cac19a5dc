"""create_client_credit_history_table

Revision ID: 2b3c4d5e6f7a
Revises: 1a2b3c4d5e6f
Create Date: 2026-10-19 09:14:05.402117

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '2b3c4d5e6f7a'
down_revision = '1a2b3c4d5e6f'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('client_credit_history',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('client_id', sa.String(length=36), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('related_invoice_id', sa.String(length=36), nullable=True),
        sa.Column('related_payment_id', sa.String(length=36), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('refund_method', sa.String(length=30), nullable=True),
        sa.Column('refund_reference', sa.String(length=255), nullable=True),
        sa.Column('previous_balance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('new_balance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['related_invoice_id'], ['invoices.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['related_payment_id'], ['payments.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('client_id', 'sequence', name='uq_client_credit_history_client_sequence')
    )
    op.create_index('ix_client_credit_history_client_id', 'client_credit_history', ['client_id'], unique=False)
    op.create_index('ix_client_credit_history_related_invoice_id', 'client_credit_history', ['related_invoice_id'], unique=False)
    op.create_index('ix_client_credit_history_related_payment_id', 'client_credit_history', ['related_payment_id'], unique=False)


def downgrade():
    op.drop_index('ix_client_credit_history_related_payment_id', table_name='client_credit_history')
    op.drop_index('ix_client_credit_history_related_invoice_id', table_name='client_credit_history')
    op.drop_index('ix_client_credit_history_client_id', table_name='client_credit_history')
    op.drop_table('client_credit_history')
