# src/intent_relay/models/account.py
"""SQLAlchemy models for ledger accounts and their transaction history."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intent_relay.db.session import Base
from intent_relay.db.time import utcnow

TRANSACTION_STATUSES = ("completed", "failed", "pending")


class Account(Base):
    """Ledger account keyed by an external account id (e.g. ``alice.near``)."""

    __tablename__ = "account"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_account_balance_non_negative"),
    )

    account_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    # Integer count of 1e-6 display units.
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    transactions: Mapped[list[AccountTransaction]] = relationship(
        "AccountTransaction",
        back_populates="account",
        order_by="AccountTransaction.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class AccountTransaction(Base):
    """Append-only record of a balance change.

    Rows are inserted together with the balance update they describe and are
    never updated afterwards.
    """

    __tablename__ = "account_transaction"
    __table_args__ = (
        CheckConstraint(
            "status IN ('completed', 'failed', 'pending')",
            name="ck_account_transaction_status",
        ),
        Index("ix_account_transaction_account_id", "account_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("account.account_id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    # Display units, already truncated to the ledger's 6 decimals.
    amount: Mapped[Decimal | None] = mapped_column(Numeric(20, 6), nullable=True)
    currency: Mapped[str | None] = mapped_column(Text, nullable=True)
    nonce: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # "metadata" is reserved on declarative classes.
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )

    account: Mapped[Account] = relationship("Account", back_populates="transactions")
