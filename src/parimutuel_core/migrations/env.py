"""Alembic environment for the ``parimutuel`` schema.

The database URL comes from ``alembic -x url=...`` when given, otherwise from
the application config (``PARIMUTUEL_CONFIG`` and its env overrides), so
migrations always target the database the API talks to.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool, text

import parimutuel_core.db.tables  # noqa: F401
from parimutuel_core.config.loader import load_config
from parimutuel_core.db.base import Base
from parimutuel_core.db.engine import database_url
from parimutuel_core.db.tables.ledger import SCHEMA

alembic_config = context.config

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

target_metadata = Base.metadata


def get_url() -> str:
    url = context.get_x_argument(as_dictionary=True).get("url")
    if not url:
        url = load_config(os.environ.get("PARIMUTUEL_CONFIG")).database.url
    return database_url(url)


def include_object(obj, name, type_, reflected, compare_to):
    # Leave tables outside the settlement schema alone.
    if type_ == "table":
        return obj.schema == SCHEMA
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_schemas=True,
        include_object=include_object,
        version_table_schema=SCHEMA,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting."""
    _configure(url=get_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(get_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}"))
        connection.commit()

        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
