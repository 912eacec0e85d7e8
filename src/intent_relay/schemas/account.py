"""Account-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from .common import CamelModel, DisplayAmount


class TransactionResponse(CamelModel):
    """A single ledger transaction."""

    id: int
    type: str
    status: str
    amount: DisplayAmount | None = None
    currency: str | None = None
    created_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class AccountResponse(CamelModel):
    """Account balance together with its most recent transactions."""

    account_id: str
    balance: DisplayAmount
    transactions: list[TransactionResponse] = Field(default_factory=list)
