"""Database session configuration.

The engine is application-lifetime state owned by a `Database` instance.
`initialize()` is idempotent and safe to call from concurrent requests: the
first caller connects, later callers wait for and reuse that result, and a
failed attempt is discarded so that the next call retries.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from intent_relay.core.settings import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import intent_relay.models  # noqa: E402,F401


class Database:
    """Lazily connected engine and session factory."""

    def __init__(self, url: str | None = None, *, echo: bool | None = None) -> None:
        self._url = url
        self._echo = settings.sql_debug if echo is None else echo
        self._lock = threading.Lock()
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def url(self) -> str:
        return self._url or settings.effective_database_url

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    def initialize(self, *, create_schema: bool = True) -> Engine:
        """Connect to the database once and return the shared engine."""
        engine = self._engine
        if engine is not None:
            return engine

        with self._lock:
            if self._engine is not None:
                return self._engine

            candidate = create_engine(self.url, pool_pre_ping=True, echo=self._echo)
            try:
                with candidate.connect() as connection:
                    connection.execute(text("SELECT 1"))
                if create_schema:
                    Base.metadata.create_all(bind=candidate)
            except Exception:
                candidate.dispose()
                logger.error("Database initialization failed for %s", candidate.url, exc_info=True)
                raise

            self._session_factory = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=candidate,
            )
            self._engine = candidate
            logger.info("Database connection established (%s)", candidate.url.get_backend_name())
            return candidate

    def session(self) -> Session:
        """Return a new session, connecting first if necessary."""
        self.initialize()
        factory = self._session_factory
        if factory is None:
            raise RuntimeError("database was disposed while opening a session")
        return factory()

    def dispose(self) -> None:
        """Release pooled connections; a later `initialize()` reconnects."""
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
            self._engine = None
            self._session_factory = None


database = Database()


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = database.session()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=database.initialize(create_schema=False))


def drop_tables() -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=database.initialize(create_schema=False))
