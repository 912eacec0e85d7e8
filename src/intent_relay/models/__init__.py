# src/intent_relay/models/__init__.py
"""SQLAlchemy models for the Intent Relay application."""

from .account import Account, AccountTransaction
from .replay_protection import ConsumedNonce

__all__ = [
    "Account", "AccountTransaction",
    "ConsumedNonce",
]
