# src/intent_relay/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import accounts_router, intents_router

__all__ = [
    "accounts_router",
    "intents_router",
]
