"""Alembic environment - migrations for the community ledger schema.

Invariants:
    - The database URL is the application's own (posterity.config.Settings), so
      migrations and the API can never point at different databases
    - posterity.models is imported before autogenerate: Base.metadata must hold
      every ledger table
    - SQLite URLs migrate in batch mode (table rebuilds); PostgreSQL alters in place

Design Decisions:
    - NullPool async engine: a migration run is one short-lived connection
    - compare_type on: the packed BigInteger/LargeBinary columns must not drift
      unnoticed between models and migrations
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

from posterity.config import get_settings
from posterity.db.base import Base
import posterity.models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(url: str, **kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL for the ledger schema without a connection."""
    url = get_settings().database_url
    _configure(
        url, url=url, literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure(str(connection.engine.url), connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = create_async_engine(
        get_settings().database_url, poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
