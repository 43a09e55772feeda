"""Alembic environment for async migrations of the record store.

The database URL is taken from ``sqlalchemy.url`` when the Alembic config
sets one, and from the application settings otherwise.
"""

import asyncio
import logging

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from src.core.config import get_settings
from src.infrastructure.database.models import TaxRateRecordModel

config = context.config

logger = logging.getLogger(__name__)

target_metadata = TaxRateRecordModel.metadata


def get_database_url() -> str:
    """Return the URL migrations should run against."""
    return (
        config.get_main_option("sqlalchemy.url")
        or get_settings().database_config.database_url
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting to a database."""
    logger.info("Running migrations in offline mode")

    context.configure(
        url=get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Run migrations using the provided connection.

    Args:
        connection: The database connection to use for migrations.
    """
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER constraints in place
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations in 'online' mode with an async engine."""
    logger.info("Running migrations in online mode with async engine")

    connectable = async_engine_from_config(
        {
            "sqlalchemy.url": get_database_url(),
            "sqlalchemy.echo": get_settings().database_config.echo,
        },
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Run the async migrations on a fresh event loop."""
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
