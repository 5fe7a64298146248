"""Alembic environment configuration for TuneAlert."""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from alembic.config import Config
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from tunealert.config import get_settings
from tunealert.infrastructure.persistence.models import Base

_context_config = getattr(context, "config", None)
config = _context_config if _context_config is not None else Config()

if getattr(config, "config_file_name", None):
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


# Hey future me - sqlalchemy.url in alembic.ini wins (handy for one-off runs against a copy),
# otherwise the same DATABASE__URL the app uses. Both URLs are async drivers
# (aiosqlite / asyncpg), which is why online mode goes through an async engine.
def _resolve_database_url(alembic_config: Config | None) -> str:
    if alembic_config is not None:
        candidate = alembic_config.get_main_option("sqlalchemy.url")
        if candidate:
            return candidate
    return get_settings().database.url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=_resolve_database_url(config),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def _do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite can't ALTER most things in place
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        url=_resolve_database_url(config),
    )

    async with connectable.connect() as connection:
        await connection.run_sync(_do_run_migrations)

    await connectable.dispose()


def get_database_url(alembic_config: Config | None = None) -> str:
    """Expose URL resolution for unit tests."""
    return _resolve_database_url(alembic_config or config)


if _context_config is not None:
    if context.is_offline_mode():
        run_migrations_offline()
    else:
        asyncio.run(run_migrations_online())
