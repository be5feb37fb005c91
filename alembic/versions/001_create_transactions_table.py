"""create transactions table

Revision ID: 001
Revises: 
Create Date: 2025-02-10 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('transaction_id', sa.String(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('sender_name', sa.String(), nullable=False),
        sa.Column('phone_number', sa.String(), nullable=False),
        sa.Column('account_name', sa.String(), nullable=False),
        sa.Column('account_number', sa.String(), nullable=False),
        sa.Column('transaction_date', sa.String(), nullable=False),
        sa.Column('transaction_time', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )

    # Dedupe guarantee for notification emails processed more than once
    op.create_unique_constraint(
        'uq_transactions_transaction_id',
        'transactions',
        ['transaction_id']
    )
    op.create_index('ix_transactions_transaction_date', 'transactions', ['transaction_date'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_transactions_transaction_date', table_name='transactions')
    op.drop_constraint('uq_transactions_transaction_id', 'transactions', type_='unique')
    op.drop_table('transactions')
