"""Create customers table

Revision ID: 20261019_000001
Revises: None
Create Date: 2026-10-19

Customers invited to sign a direct debit mandate, with their single-use
session token.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the customers table."""
    op.create_table(
        'customers',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('external_id', sa.String(100), nullable=True),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('phone_number', sa.String(50), nullable=False),
        sa.Column('account_number', sa.String(100), nullable=True),
        sa.Column('loan_status', sa.String(100), nullable=True),
        sa.Column('loan_balance', sa.String(50), nullable=True),
        sa.Column('monthly_repayment', sa.String(50), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('no_of_months', sa.Integer(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('PENDING', 'SUBMITTED', 'EXPIRED', name='customer_status', create_constraint=True),
            nullable=False,
            server_default='PENDING'
        ),
        sa.Column('session_token', sa.String(128), nullable=True),
        sa.Column('token_expiry', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_token', name='uq_customers_session_token'),
    )

    # Create indexes for common queries
    op.create_index('ix_customers_external_id', 'customers', ['external_id'])
    op.create_index('ix_customers_status', 'customers', ['status'])


def downgrade() -> None:
    """Drop the customers table."""
    op.drop_index('ix_customers_status', table_name='customers')
    op.drop_index('ix_customers_external_id', table_name='customers')
    op.drop_table('customers')
