"""Relay-related Pydantic schemas."""

from __future__ import annotations

from pydantic import Field

from .common import CamelModel, DisplayAmount


class RelayRequest(CamelModel):
    """Signed intent submitted for relaying.

    Every field is optional at the schema level so that missing fields are
    reported by the relay pipeline with a 400 rather than a validation error.
    """

    account_id: str | None = Field(None, description="Account to credit (e.g. alice.near)")
    message: str | None = Field(None, description="Exact signed text, a serialized intent")
    signature: str | list[int] | None = Field(
        None,
        description="Ed25519 signature as 0x-hex, base64, or a byte array",
    )
    public_key: str | None = Field(
        None,
        description="Ed25519 public key as ed25519:<base58>, hex or base64",
    )


class RelayTransaction(CamelModel):
    """Summary of the transaction recorded for a relayed intent."""

    type: str
    status: str
    amount: DisplayAmount | None = None


class RelayResponse(CamelModel):
    """Successful relay response."""

    success: bool = True
    new_balance: DisplayAmount
    transaction: RelayTransaction
    account_id: str
