# src/intent_relay/db/__init__.py
"""Database configuration and utilities."""

from .session import Database, database, get_db

__all__ = ["Database", "database", "get_db"]
