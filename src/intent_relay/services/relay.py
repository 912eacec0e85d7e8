"""Relay pipeline: verify a signed intent and credit the ledger.

Each request moves through ``received -> signature_checked -> parsed ->
credited -> responded``. Every gate either passes or raises, so a failure at
one step moves the request to ``rejected`` before anything is written.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import cast

from intent_relay.core.errors import (
    BadRequestError,
    IntentRelayError,
    MalformedInputError,
    UnauthorizedError,
)
from intent_relay.core.settings import settings
from intent_relay.services.crypto import CryptoService, SignatureInput
from intent_relay.services.intent_parser import ParsedIntent, parse_intent_payload
from intent_relay.services.ledger import CreditResult, LedgerService

logger = logging.getLogger(__name__)

_MESSAGE_LOG_PREVIEW = 100


class RelayState(Enum):
    """Per-request relay states."""

    RECEIVED = "received"
    SIGNATURE_CHECKED = "signature_checked"
    PARSED = "parsed"
    CREDITED = "credited"
    RESPONDED = "responded"
    REJECTED = "rejected"


def _advance(account_id: str, current: RelayState, target: RelayState) -> RelayState:
    logger.debug("Intent relay %s -> %s for %s", current.value, target.value, account_id)
    return target


@dataclass(frozen=True)
class SignedEnvelope:
    """A relay request as received from the client."""

    account_id: str | None
    message: str | None
    signature: str | bytes | Sequence[int] | None
    public_key: str | None


@dataclass(frozen=True)
class RelayResult:
    """Successful relay outcome."""

    account_id: str
    new_balance: Decimal
    credit: CreditResult
    intent: ParsedIntent


class RelayService:
    """Orchestrates signature verification, parsing and crediting."""

    def __init__(
        self,
        ledger: LedgerService,
        crypto: CryptoService | None = None,
        *,
        treasury_account_id: str | None = None,
    ) -> None:
        self._ledger = ledger
        self._crypto = crypto or CryptoService()
        self._treasury_account_id = (
            treasury_account_id if treasury_account_id is not None else settings.treasury_account_id
        )

    @staticmethod
    def _check_fields(envelope: SignedEnvelope) -> tuple[str, str, str]:
        """Return ``(account_id, message, public_key)`` once all fields are present."""
        missing = [
            name
            for name, value in (
                ("accountId", envelope.account_id),
                ("message", envelope.message),
                ("signature", envelope.signature),
                ("publicKey", envelope.public_key),
            )
            if value is None or (isinstance(value, (str, bytes, list, tuple)) and not value)
        ]
        if missing:
            raise BadRequestError(f"Missing required fields: {', '.join(missing)}")
        return (
            cast(str, envelope.account_id),
            cast(str, envelope.message),
            cast(str, envelope.public_key),
        )

    def _check_signature(
        self,
        account_id: str,
        message: str,
        signature: SignatureInput | None,
        public_key: str,
    ) -> None:
        try:
            valid = self._crypto.verify_payload(message.encode("utf-8"), signature, public_key)
        except MalformedInputError as err:
            logger.warning("Rejecting intent for %s: %s", account_id, err)
            raise UnauthorizedError("invalid signature") from err
        if not valid:
            raise UnauthorizedError("invalid signature")

    def relay(self, envelope: SignedEnvelope) -> RelayResult:
        """Run the relay pipeline for one envelope.

        Raises:
            IntentRelayError: Any gate failure; see `intent_relay.core.errors`.
        """
        state = RelayState.RECEIVED
        try:
            account_id, message, public_key = self._check_fields(envelope)
            logger.info(
                "Intent received for relay: account=%s message=%s",
                account_id,
                message[:_MESSAGE_LOG_PREVIEW],
            )

            self._check_signature(account_id, message, envelope.signature, public_key)
            state = _advance(account_id, state, RelayState.SIGNATURE_CHECKED)

            parsed = parse_intent_payload(
                message,
                account_id=account_id,
                treasury_account_id=self._treasury_account_id,
            )
            state = _advance(account_id, state, RelayState.PARSED)

            credit = self._ledger.credit_account(
                account_id,
                parsed.amount,
                nonce=parsed.nonce,
                currency=parsed.currency,
                metadata={
                    "recipient": parsed.recipient,
                    "description": parsed.description,
                    "tokenIn": parsed.intent.action.token_in,
                    "amountIn": parsed.intent.action.amount_in,
                    "deadline": parsed.intent.deadline,
                },
            )
            state = _advance(account_id, state, RelayState.CREDITED)
        except IntentRelayError as err:
            logger.warning(
                "Intent relay %s -> %s for %s: %s",
                state.value,
                RelayState.REJECTED.value,
                envelope.account_id,
                err.reason,
            )
            raise

        logger.info(
            "Credited %s %s to %s (new balance %s)",
            parsed.amount,
            parsed.currency,
            account_id,
            credit.new_balance,
        )
        _advance(account_id, state, RelayState.RESPONDED)
        return RelayResult(
            account_id=account_id,
            new_balance=credit.new_balance,
            credit=credit,
            intent=parsed,
        )
