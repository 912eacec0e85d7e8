# src/intent_relay/models/replay_protection.py
"""Models supporting replay protection for relayed intents."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from intent_relay.db.session import Base
from intent_relay.db.time import utcnow


class ConsumedNonce(Base):
    """Record indicating that an intent nonce has already been credited."""

    __tablename__ = "consumed_intent_nonce"

    # (account_id, nonce) -> existence means "already credited".
    account_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("account.account_id", ondelete="CASCADE"),
        primary_key=True,
    )
    nonce: Mapped[str] = mapped_column(Text, primary_key=True)
    consumed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
