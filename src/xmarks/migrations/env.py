"""Alembic environment configuration."""

from __future__ import annotations

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine

from xmarks.db import Base
from xmarks.settings import Settings

target_metadata = Base.metadata

load_dotenv()

config = context.config

# An explicit sqlalchemy.url (tests, CLI -x overrides) wins over settings
if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", Settings().database_url)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True, render_as_batch=True)
    with context.begin_transaction():
        context.run_migrations()


def _run_with(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode.

    ``init_db`` hands over its own connection through ``config.attributes`` so
    the migration runs inside the caller's transaction.
    """
    connection = config.attributes.get("connection")
    if connection is not None:
        _run_with(connection)
        return

    connectable = create_engine(config.get_main_option("sqlalchemy.url"))
    with connectable.connect() as connection:
        _run_with(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
