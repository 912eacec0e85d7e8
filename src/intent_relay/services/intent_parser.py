"""Extraction of the economically relevant fields from a verified payload.

Amounts are read only from the structured ``action`` of the intent. A
human-readable ``message`` (for example the NEP-413 "Deposit 5 USDT" text) is
kept as a description and never used to decide how much to credit.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from intent_relay.core.errors import ExpiredIntentError, ParseError
from intent_relay.core.intents import (
    Intent,
    coerce_amount,
    intent_from_dict,
    is_finite_number,
    is_intent_valid,
    now_ms,
)
from intent_relay.services.ledger import LEDGER_UNIT, MAX_CREDIT_AMOUNT

logger = logging.getLogger(__name__)

NEP413_STANDARD = "NEP-413"


@dataclass(frozen=True)
class ParsedIntent:
    """Verified intent plus the values the ledger acts on."""

    intent: Intent
    amount: Decimal
    currency: str
    recipient: str
    description: str | None = None

    @property
    def nonce(self) -> str:
        return self.intent.nonce

    @property
    def signer_id(self) -> str:
        return self.intent.action.signer_id


def _decode_object(text: str) -> dict[str, Any] | None:
    try:
        decoded = json.loads(text)
    except (TypeError, ValueError):
        return None
    return decoded if isinstance(decoded, dict) else None


def _normalize_nonce(value: Any) -> str | None:
    """Return a string nonce; byte-array nonces become lowercase hex."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, list) and value and all(
        isinstance(item, int) and not isinstance(item, bool) and 0 <= item <= 0xFF
        for item in value
    ):
        return bytes(value).hex()
    return None


def _unwrap(payload: dict[str, Any]) -> tuple[dict[str, Any], str | None]:
    """Return the structured intent object and any free-text description.

    A NEP-413 envelope whose ``message`` is a serialized intent is unwrapped;
    the envelope nonce is used when the inner intent carries none.
    """
    if "action" in payload:
        return payload, None

    if payload.get("standard") == NEP413_STANDARD:
        message = payload.get("message")
        if isinstance(message, str):
            inner = _decode_object(message)
            if inner is not None and "action" in inner:
                if "nonce" not in inner and "nonce" in payload:
                    inner = {**inner, "nonce": payload["nonce"]}
                return inner, None
            return payload, message
    return payload, None


def extract_amount(payload: Mapping[str, Any]) -> tuple[Decimal, str]:
    """Return ``(amount, currency)`` from a structured intent payload.

    ``amountOut`` wins over ``amountIn`` when both are present because it is
    what the treasury receives in ``tokenOut``.

    Raises:
        ParseError: ``"amount missing"`` or ``"invalid amount"``.
    """
    action = payload.get("action")
    if not isinstance(action, Mapping):
        raise ParseError("amount missing")

    raw = action.get("amountOut")
    if raw is None:
        raw = action.get("amountIn")
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ParseError("amount missing")

    amount = coerce_amount(raw)
    if amount is None or amount < LEDGER_UNIT or amount > MAX_CREDIT_AMOUNT:
        raise ParseError("invalid amount")

    currency = action.get("tokenOut")
    if not isinstance(currency, str) or not currency:
        raise ParseError("currency missing")
    return amount, currency


def parse_intent_payload(
    message: str,
    *,
    account_id: str,
    treasury_account_id: str | None = None,
    timestamp_ms: int | None = None,
) -> ParsedIntent:
    """Parse a verified relay message into a `ParsedIntent`.

    Args:
        message: The exact text whose signature was verified.
        account_id: Account the relay request wants to credit.
        treasury_account_id: When set, the only accepted ``receiverId``.
        timestamp_ms: Clock override for deadline checks.

    Raises:
        ParseError: The payload is not a usable intent.
        ExpiredIntentError: The deadline has passed.
    """
    decoded = _decode_object(message)
    if decoded is None:
        raise ParseError("malformed payload")

    payload, description = _unwrap(decoded)
    amount, currency = extract_amount(payload)

    deadline = payload.get("deadline")
    if not is_finite_number(deadline):
        raise ParseError("deadline missing")

    nonce = _normalize_nonce(payload.get("nonce"))
    if nonce is None:
        raise ParseError("nonce missing")

    try:
        intent = intent_from_dict({**payload, "nonce": nonce})
    except ValueError as err:
        logger.debug("Rejecting intent payload: %s", err)
        raise ParseError("malformed payload") from err

    timestamp = now_ms() if timestamp_ms is None else timestamp_ms
    if not is_intent_valid(intent, timestamp):
        raise ExpiredIntentError("intent expired")

    if intent.action.signer_id != account_id:
        raise ParseError("signer does not match account")
    if treasury_account_id and intent.action.receiver_id != treasury_account_id:
        raise ParseError("receiver does not match treasury")

    return ParsedIntent(
        intent=intent,
        amount=amount,
        currency=currency,
        recipient=intent.action.receiver_id,
        description=description or intent.metadata.description,
    )
