"""Token transfer intents.

An intent is a signed declaration that a payer is willing to move value. The
client builds one with `build_token_transfer_intent`, signs the bytes of
`serialize_intent(intent)` and hands the result to the relay. The relay
rebuilds the same structure from the signed JSON with `intent_from_dict`.
"""
from __future__ import annotations

import json
import math
import secrets
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from intent_relay.core.errors import IntentValidationError
from intent_relay.core.settings import settings

TOKEN_TRANSFER = "token_transfer"
DEFAULT_DEADLINE_MINUTES = 30
NONCE_RANDOM_RANGE = 1_000_000
MILLISECONDS_PER_MINUTE = 60_000

_KNOWN_METADATA_KEYS = {"appId": "app_id", "description": "description"}


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def coerce_amount(value: Any) -> Decimal | None:
    """Return `value` as a finite Decimal, or None if it is not numeric.

    Booleans are rejected even though they are ints in Python.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def is_finite_number(value: Any) -> bool:
    """Return True for an int or finite float that is not a bool.

    ``json.loads`` accepts ``Infinity`` and ``NaN``, which cannot become an
    integer deadline.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, int):
        return True
    return math.isfinite(value)


@dataclass(frozen=True)
class TokenTransferAction:
    """Transfer of `amount_in` of `token_in` in exchange for `token_out`."""

    signer_id: str
    receiver_id: str
    token_in: str
    amount_in: str
    token_out: str
    amount_out: str | None = None

    type: str = field(default=TOKEN_TRANSFER, init=False)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "signerId": self.signer_id,
            "receiverId": self.receiver_id,
            "tokenIn": self.token_in,
            "amountIn": self.amount_in,
            "tokenOut": self.token_out,
        }
        if self.amount_out is not None:
            data["amountOut"] = self.amount_out
        return data


@dataclass(frozen=True)
class IntentMetadata:
    """Descriptive intent metadata.

    Only `app_id` and `description` are named; anything else a client sends
    is kept untouched in `extra`. Ledger logic never reads any of it.
    """

    app_id: str | None = None
    description: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> IntentMetadata:
        if not data:
            return cls()
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            if key in _KNOWN_METADATA_KEYS:
                known[_KNOWN_METADATA_KEYS[key]] = None if value is None else str(value)
            else:
                extra[key] = value
        return cls(extra=extra, **known)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        if self.app_id is not None:
            data["appId"] = self.app_id
        if self.description is not None:
            data["description"] = self.description
        return data

    def is_empty(self) -> bool:
        return self.app_id is None and self.description is None and not self.extra


@dataclass(frozen=True)
class Intent:
    """Immutable transfer intent.

    Attributes:
        nonce: Opaque uniqueness token.
        deadline: Expiry instant in epoch milliseconds (exclusive).
        action: The requested transfer.
        metadata: Descriptive, non-authoritative data.
    """

    nonce: str
    deadline: int
    action: TokenTransferAction
    metadata: IntentMetadata = field(default_factory=IntentMetadata)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "nonce": self.nonce,
            "deadline": self.deadline,
            "action": self.action.to_dict(),
        }
        if not self.metadata.is_empty():
            data["metadata"] = self.metadata.to_dict()
        return data


@dataclass(frozen=True)
class CreateIntentOptions:
    """Inputs accepted by `build_token_transfer_intent`."""

    signer_id: str
    receiver_id: str
    token_in: str
    amount_in: str
    token_out: str
    amount_out: str | None = None
    # None falls back to INTENT_DEFAULT_DEADLINE_MINUTES.
    deadline_minutes: int | None = None
    metadata: Mapping[str, Any] | None = None


def generate_nonce(timestamp_ms: int | None = None) -> str:
    """Return `<millis>-<random suffix>`.

    Unique enough to tell intents apart, but guessable; it only protects
    against replay together with the ledger's consumed-nonce table.
    """
    timestamp = now_ms() if timestamp_ms is None else timestamp_ms
    return f"{timestamp}-{secrets.randbelow(NONCE_RANDOM_RANGE)}"


def calculate_deadline(minutes: int = DEFAULT_DEADLINE_MINUTES, timestamp_ms: int | None = None) -> int:
    """Return the absolute deadline `minutes` from `timestamp_ms` (default: now)."""
    timestamp = now_ms() if timestamp_ms is None else timestamp_ms
    return timestamp + minutes * MILLISECONDS_PER_MINUTE


def _require(value: str | None, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise IntentValidationError(field_name, "is required")
    return str(value)


def _require_positive_amount(value: str, field_name: str) -> None:
    amount = coerce_amount(value)
    if amount is None:
        raise IntentValidationError(field_name, "must be a number")
    if amount <= 0:
        raise IntentValidationError(field_name, "must be greater than 0")


def build_token_transfer_intent(
    options: CreateIntentOptions,
    *,
    timestamp_ms: int | None = None,
) -> Intent:
    """Validate `options` and build a new intent with a fresh nonce and deadline.

    Raises:
        IntentValidationError: naming the first offending field.
    """
    signer_id = _require(options.signer_id, "signer_id")
    receiver_id = _require(options.receiver_id, "receiver_id")
    token_in = _require(options.token_in, "token_in")
    token_out = _require(options.token_out, "token_out")
    amount_in = _require(options.amount_in, "amount_in")
    _require_positive_amount(amount_in, "amount_in")
    if options.amount_out is not None:
        _require_positive_amount(options.amount_out, "amount_out")
    deadline_minutes = (
        settings.intent_default_deadline_minutes
        if options.deadline_minutes is None
        else options.deadline_minutes
    )
    if deadline_minutes <= 0:
        raise IntentValidationError("deadline_minutes", "must be greater than 0")

    timestamp = now_ms() if timestamp_ms is None else timestamp_ms
    return Intent(
        nonce=generate_nonce(timestamp),
        deadline=calculate_deadline(deadline_minutes, timestamp),
        action=TokenTransferAction(
            signer_id=signer_id,
            receiver_id=receiver_id,
            token_in=token_in,
            amount_in=amount_in,
            token_out=token_out,
            amount_out=options.amount_out,
        ),
        metadata=IntentMetadata.from_dict(options.metadata),
    )


def serialize_intent(intent: Intent) -> str:
    """Return the canonical JSON text that clients sign.

    Keys are sorted and separators are compact so that the verifier can
    reproduce the exact bytes from the decoded structure.
    """
    return json.dumps(
        intent.to_dict(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def intent_from_dict(data: Mapping[str, Any]) -> Intent:
    """Rebuild an `Intent` from its decoded JSON form.

    Raises:
        ValueError: If a required field is missing or has the wrong type.
    """
    action = data.get("action")
    if not isinstance(action, Mapping):
        raise ValueError("action must be an object")
    if action.get("type") != TOKEN_TRANSFER:
        raise ValueError(f"unsupported action type: {action.get('type')!r}")

    def _text(key: str, *, optional: bool = False) -> str | None:
        value = action.get(key)
        if value is None and optional:
            return None
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValueError(f"action.{key} must be a string")
        return str(value)

    deadline = data.get("deadline")
    if not is_finite_number(deadline):
        raise ValueError("deadline must be a finite number")
    nonce = data.get("nonce")
    if not isinstance(nonce, str) or not nonce:
        raise ValueError("nonce must be a non-empty string")
    metadata = data.get("metadata")
    if metadata is not None and not isinstance(metadata, Mapping):
        raise ValueError("metadata must be an object")

    return Intent(
        nonce=nonce,
        deadline=int(deadline),
        action=TokenTransferAction(
            signer_id=_text("signerId") or "",
            receiver_id=_text("receiverId") or "",
            token_in=_text("tokenIn") or "",
            amount_in=_text("amountIn") or "",
            token_out=_text("tokenOut") or "",
            amount_out=_text("amountOut", optional=True),
        ),
        metadata=IntentMetadata.from_dict(metadata),
    )


def is_intent_valid(intent: Intent, timestamp_ms: int | None = None) -> bool:
    """Return True while the intent has not reached its deadline."""
    timestamp = now_ms() if timestamp_ms is None else timestamp_ms
    return timestamp < intent.deadline
