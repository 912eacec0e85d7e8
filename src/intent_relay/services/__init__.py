"""Business logic services for the Intent Relay application."""

from .crypto import CryptoService
from .intent_parser import ParsedIntent, extract_amount, parse_intent_payload
from .ledger import CreditResult, LedgerService
from .relay import RelayResult, RelayService, SignedEnvelope

__all__ = [
    "CryptoService",
    "CreditResult",
    "LedgerService",
    "ParsedIntent",
    "RelayResult",
    "RelayService",
    "SignedEnvelope",
    "extract_amount",
    "parse_intent_payload",
]
