"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .account import AccountResponse, TransactionResponse
from .common import ErrorResponse
from .relay import RelayRequest, RelayResponse, RelayTransaction

__all__ = [
    "AccountResponse", "TransactionResponse",
    "ErrorResponse",
    "RelayRequest", "RelayResponse", "RelayTransaction",
]
