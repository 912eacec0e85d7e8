"""ledger tables

Revision ID: 3f1c2a9d7b40
Revises:
Create Date: 2026-10-18 10:12:41.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create account, transaction and consumed-nonce tables."""
    op.create_table(
        "account",
        sa.Column("account_id", sa.String(length=128), nullable=False),
        sa.Column("balance", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_account_balance_non_negative"),
        sa.PrimaryKeyConstraint("account_id"),
    )
    op.create_table(
        "account_transaction",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("account_id", sa.String(length=128), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("amount", sa.Numeric(precision=20, scale=6), nullable=True),
        sa.Column("currency", sa.Text(), nullable=True),
        sa.Column("nonce", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.CheckConstraint(
            "status IN ('completed', 'failed', 'pending')",
            name="ck_account_transaction_status",
        ),
        sa.ForeignKeyConstraint(["account_id"], ["account.account_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_account_transaction_account_id",
        "account_transaction",
        ["account_id"],
    )
    op.create_table(
        "consumed_intent_nonce",
        sa.Column("account_id", sa.String(length=128), nullable=False),
        sa.Column("nonce", sa.Text(), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["account.account_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("account_id", "nonce"),
    )


def downgrade() -> None:
    """Drop ledger tables."""
    op.drop_table("consumed_intent_nonce")
    op.drop_index("ix_account_transaction_account_id", table_name="account_transaction")
    op.drop_table("account_transaction")
    op.drop_table("account")
