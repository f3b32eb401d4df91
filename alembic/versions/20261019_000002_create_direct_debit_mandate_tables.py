"""Create direct debit mandate, account and generated PDF tables

Revision ID: 20261019_000002
Revises: 20261019_000001
Create Date: 2026-10-19

Mandates are append-only; accounts are created with their mandate.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_000002"
down_revision: Union[str, None] = "20261019_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "direct_debit_mandates",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("customer_id", sa.String(36), nullable=False),
        sa.Column("ghana_card_number", sa.Text(), nullable=False),
        sa.Column("agreement_accepted", sa.Boolean(), nullable=False),
        sa.Column("digital_signature_path", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["customer_id"],
            ["customers.id"],
            name="fk_direct_debit_mandates_customer_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_direct_debit_mandates_customer_id", "direct_debit_mandates", ["customer_id"])
    op.create_index("ix_direct_debit_mandates_submitted_at", "direct_debit_mandates", ["submitted_at"])

    op.create_table(
        "direct_debit_accounts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("mandate_id", sa.String(36), nullable=False),
        sa.Column(
            "account_order",
            sa.Enum("1ST", "2ND", "3RD", name="account_order", create_constraint=True),
            nullable=False,
        ),
        sa.Column("bank_name", sa.String(200), nullable=False),
        sa.Column("branch", sa.String(200), nullable=False),
        sa.Column("account_name", sa.String(200), nullable=False),
        sa.Column("account_number", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["mandate_id"],
            ["direct_debit_mandates.id"],
            name="fk_direct_debit_accounts_mandate_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("mandate_id", "account_order", name="uq_direct_debit_accounts_mandate_order"),
    )
    op.create_index("ix_direct_debit_accounts_mandate_id", "direct_debit_accounts", ["mandate_id"])

    op.create_table(
        "generated_pdfs",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("mandate_id", sa.String(36), nullable=False),
        sa.Column("file_path", sa.String(1000), nullable=False),
        sa.Column("generated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["mandate_id"],
            ["direct_debit_mandates.id"],
            name="fk_generated_pdfs_mandate_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_generated_pdfs_mandate_id", "generated_pdfs", ["mandate_id"])


def downgrade() -> None:
    op.drop_index("ix_generated_pdfs_mandate_id", table_name="generated_pdfs")
    op.drop_table("generated_pdfs")
    op.drop_index("ix_direct_debit_accounts_mandate_id", table_name="direct_debit_accounts")
    op.drop_table("direct_debit_accounts")
    op.drop_index("ix_direct_debit_mandates_submitted_at", table_name="direct_debit_mandates")
    op.drop_index("ix_direct_debit_mandates_customer_id", table_name="direct_debit_mandates")
    op.drop_table("direct_debit_mandates")
