"""Async database engine and session lifecycle management.

Core functionality:
- **Engine creation**: One async engine per process, created lazily
- **Session factory**: Async sessions committed on success, rolled back on error
- **Schema bootstrap**: Table creation for embedded SQLite deployments
- **Health checks**: Database connectivity validation for monitoring
- **Query monitoring**: Slow query detection through cursor event listeners

SQLite (aiosqlite) is the default embedded store; PostgreSQL (asyncpg) gets
connection pooling and a server-side command timeout.
"""

import threading
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from weakref import WeakKeyDictionary

from loguru import logger
from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.engine.interfaces import DBAPICursor, ExecutionContext
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.config import DatabaseConfig, get_settings
from src.core.context import RequestContext
from src.core.error_context import sanitize_sql_params
from src.infrastructure.database.models import TaxRateRecordModel

POOL_RECYCLE_SECONDS = 3600  # 1 hour
COMMAND_TIMEOUT_SECONDS = 60

_query_start_times: WeakKeyDictionary[ExecutionContext, float] = WeakKeyDictionary()


def _before_cursor_execute(
    _conn: Connection,
    _cursor: DBAPICursor,
    _statement: str,
    _parameters: dict[str, Any] | list[Any] | tuple[Any, ...] | None,
    context: ExecutionContext,
    _executemany: bool,
) -> None:
    """Record the query start time for the execution context."""
    _query_start_times[context] = time.perf_counter()


def _after_cursor_execute(
    _conn: Connection,
    cursor: DBAPICursor,
    statement: str,
    parameters: dict[str, Any] | list[Any] | tuple[Any, ...] | None,
    context: ExecutionContext,
    executemany: bool,
) -> None:
    """Log queries slower than the configured threshold.

    Args:
        _conn: Database connection (unused).
        cursor: Database cursor, read for the affected row count.
        statement: SQL statement that was executed.
        parameters: Query parameters.
        context: SQLAlchemy execution context.
        executemany: Whether this was an executemany operation.
    """
    start_time = _query_start_times.pop(context, None)
    if start_time is None:
        return

    log_config = get_settings().log_config
    duration_ms = (time.perf_counter() - start_time) * 1000
    if duration_ms < log_config.slow_query_threshold_ms:
        return

    rows_affected = getattr(cursor, "rowcount", -1)
    clean_statement = " ".join(statement.split())[:500]
    logger.warning(
        "Slow query detected: {}... Duration: {:.2f}ms",
        clean_statement[:100],
        duration_ms,
        query=clean_statement,
        duration_ms=round(duration_ms, 2),
        rows_affected=-1 if rows_affected is None else rows_affected,
        parameters=sanitize_sql_params(parameters),
        correlation_id=RequestContext.get_correlation_id(),
        executemany=executemany,
        threshold_ms=log_config.slow_query_threshold_ms,
    )


def _engine_options(db_config: DatabaseConfig) -> dict[str, Any]:
    """Build driver-specific ``create_async_engine`` keyword arguments."""
    options: dict[str, Any] = {
        "echo": db_config.echo,
        "pool_pre_ping": db_config.pool_pre_ping,
    }
    if db_config.is_sqlite:
        # The sqlite3 busy timeout, in seconds
        options["connect_args"] = {"timeout": COMMAND_TIMEOUT_SECONDS}
        return options

    options.update(
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_recycle=POOL_RECYCLE_SECONDS,
        connect_args={
            "server_settings": {"jit": "off"},
            "command_timeout": COMMAND_TIMEOUT_SECONDS,
        },
    )
    return options


def create_database_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async SQLAlchemy engine for the configured database.

    Args:
        database_url: Optional database URL. If not provided, uses the
                     configured database URL from settings.

    Returns:
        AsyncEngine: Configured async engine instance.
    """
    settings = get_settings()
    db_config = settings.database_config
    if database_url is not None:
        db_config = db_config.model_copy(update={"database_url": database_url})

    engine = create_async_engine(db_config.database_url, **_engine_options(db_config))

    if settings.log_config.enable_sql_logging:
        sync_engine = engine.sync_engine
        event.listen(sync_engine, "before_cursor_execute", _before_cursor_execute)
        event.listen(sync_engine, "after_cursor_execute", _after_cursor_execute)
        logger.info("Registered slow query event listeners")

    logger.info(
        "Created database engine - dialect: {}, sql_logging: {}",
        engine.dialect.name,
        settings.log_config.enable_sql_logging,
    )
    return engine


class _DatabaseManager:
    """Holds the process-wide engine and session factory."""

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._async_session_factory: async_sessionmaker[AsyncSession] | None = None
        self._lock = threading.Lock()

    def get_engine(self) -> AsyncEngine:
        """Get or create the async engine instance."""
        if self._engine is None:
            with self._lock:
                if self._engine is None:
                    self._engine = create_database_engine()
        return self._engine

    def get_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the async session factory."""
        if self._async_session_factory is None:
            engine = self.get_engine()
            with self._lock:
                if self._async_session_factory is None:
                    self._async_session_factory = async_sessionmaker(
                        engine,
                        class_=AsyncSession,
                        expire_on_commit=False,
                    )
                    logger.info("Created async session factory")
        return self._async_session_factory

    async def close(self) -> None:
        """Dispose of the engine and forget the session factory."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")
        self.reset()

    def reset(self) -> None:
        """Reset the manager state. Used primarily for testing."""
        self._engine = None
        self._async_session_factory = None


_db_manager = _DatabaseManager()


def get_engine() -> AsyncEngine:
    """Get or create the global async engine instance."""
    return _db_manager.get_engine()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the global async session factory."""
    return _db_manager.get_session_factory()


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get an async database session with automatic cleanup.

    The session is committed when the block exits normally and rolled back
    when it raises; the exception is re-raised.

    Yields:
        AsyncGenerator[AsyncSession]: Database session for performing operations.

    Example:
        async with get_async_session() as session:
            store = TaxRateRepository(session)
            await store.insert(record)
    """
    async_session_factory = get_session_factory()
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            logger.debug("Database session rolled back due to error")
            raise


async def create_schema() -> None:
    """Create any missing tables of the registered models."""
    async with get_engine().begin() as conn:
        await conn.run_sync(TaxRateRecordModel.metadata.create_all)
    logger.info("Database schema is up to date")


async def close_database() -> None:
    """Close the database engine and cleanup connections.

    Called during application shutdown.
    """
    await _db_manager.close()


async def check_database_connection() -> tuple[bool, str | None]:
    """Check if the database answers a trivial query.

    Returns:
        tuple[bool, str | None]: Whether the database is reachable, and the
            error message when it is not.
    """
    try:
        async with get_engine().connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            _ = result.scalar()
    except SQLAlchemyError as e:
        return False, str(e)
    else:
        return True, None
