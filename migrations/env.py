"""Alembic environment for the ledger schema.

``alembic.ini`` puts ``src/`` on the import path. The database URL comes from
``ALEMBIC_URL``, then ``sqlalchemy.url`` in the config, then application
settings.
"""
from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from intent_relay import models  # noqa: F401  registers the ledger tables
from intent_relay.core.settings import settings
from intent_relay.db.session import Base

config = context.config
target_metadata = Base.metadata

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _database_url() -> str:
    url = os.getenv("ALEMBIC_URL") or config.get_main_option("sqlalchemy.url")
    return url or settings.database_url_sync


def _skip_version_table(obj, name, type_, reflected, compare_to) -> bool:
    return not (type_ == "table" and name == "alembic_version")


def _configure(url: str, **options) -> None:
    # SQLite cannot ALTER most constraints in place.
    context.configure(
        target_metadata=target_metadata,
        include_object=_skip_version_table,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        **options,
    )


def migrate_offline(url: str) -> None:
    """Emit the migration SQL without connecting."""
    _configure(url, url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def migrate_online(url: str) -> None:
    """Apply migrations over a live connection."""
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = url
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _configure(url, connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    migrate_offline(_database_url())
else:
    migrate_online(_database_url())
