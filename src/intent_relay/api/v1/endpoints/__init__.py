# src/intent_relay/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .accounts import router as accounts_router
from .intents import router as intents_router

__all__ = [
    "accounts_router",
    "intents_router",
]
