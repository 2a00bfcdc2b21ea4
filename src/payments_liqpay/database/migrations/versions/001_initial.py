"""Initial migration - create transactions and processed_invoices tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'transactions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('transaction_id', sa.String(64), nullable=False, unique=True),
        sa.Column('parent_id', sa.String(36), sa.ForeignKey('transactions.id'), nullable=True),
        sa.Column('order_type', sa.String(255), nullable=False),
        sa.Column('order_id', sa.String(255), nullable=False),
        sa.Column('driver', sa.String(50), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='payment'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('commission', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=True),
        sa.Column('external_id', sa.String(255), nullable=True),
        sa.Column('options_json', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_index('ix_transactions_order', 'transactions', ['order_type', 'order_id', 'driver'])
    op.create_index('ix_transactions_status', 'transactions', ['status'])
    op.create_index('ix_transactions_external_id', 'transactions', ['external_id'])

    op.create_table(
        'processed_invoices',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('driver', sa.String(50), nullable=False),
        sa.Column('payment_id', sa.String(255), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('transaction_id', sa.String(36), sa.ForeignKey('transactions.id'), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('driver', 'payment_id', 'type', 'status', name='uq_processed_invoices_key'),
    )


def downgrade() -> None:
    op.drop_table('processed_invoices')

    op.drop_index('ix_transactions_external_id', table_name='transactions')
    op.drop_index('ix_transactions_status', table_name='transactions')
    op.drop_index('ix_transactions_order', table_name='transactions')
    op.drop_table('transactions')
