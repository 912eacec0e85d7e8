"""Error taxonomy for the intent relay pipeline.

Every error is terminal for the request that raised it. The HTTP layer maps
``status_code`` and the error message onto a ``{"success": false}`` body.
"""

from __future__ import annotations

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_GONE = 410
HTTP_INTERNAL_SERVER_ERROR = 500


class IntentRelayError(Exception):
    """Base class for all relay failures."""

    status_code: int = HTTP_INTERNAL_SERVER_ERROR

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class IntentValidationError(IntentRelayError, ValueError):
    """Raised when intent construction inputs are rejected.

    Attributes:
        field: Name of the offending input field.
    """

    status_code = HTTP_BAD_REQUEST

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field


class BadRequestError(IntentRelayError):
    """Raised when a relay request is missing required fields."""

    status_code = HTTP_BAD_REQUEST


class MalformedInputError(IntentRelayError, ValueError):
    """Raised when a public key or signature cannot be decoded."""

    status_code = HTTP_BAD_REQUEST


class UnauthorizedError(IntentRelayError):
    """Raised when a signature does not verify against the claimed key."""

    status_code = HTTP_UNAUTHORIZED


class ParseError(IntentRelayError):
    """Raised when a verified payload does not carry a usable intent."""

    status_code = HTTP_BAD_REQUEST


class ExpiredIntentError(IntentRelayError):
    """Raised when an intent is presented at or after its deadline."""

    status_code = HTTP_GONE


class ReplayedIntentError(IntentRelayError):
    """Raised when an intent nonce was already credited for the account."""

    status_code = HTTP_CONFLICT


class AccountNotFoundError(IntentRelayError):
    """Raised when a ledger account does not exist."""

    status_code = HTTP_NOT_FOUND


class LedgerError(IntentRelayError):
    """Raised when the ledger could not persist a credit."""

    status_code = HTTP_INTERNAL_SERVER_ERROR
