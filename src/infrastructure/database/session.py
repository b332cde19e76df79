"""Engine and session lifecycle for the SQL store backend.

One engine per process, created lazily from ``database_config``. asyncpg
engines get a bounded, recycled pool; aiosqlite engines pin a single
connection when the database is in memory so every session sees the same
tables. With ``LOG_CONFIG__ENABLE_SQL_LOGGING`` on, statements slower than
``slow_query_threshold_ms`` are logged with sanitized parameters.
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from weakref import WeakKeyDictionary

from loguru import logger
from sqlalchemy import event, make_url, text
from sqlalchemy.engine import Connection
from sqlalchemy.engine.interfaces import DBAPICursor, ExecutionContext
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.core.config import DatabaseConfig, get_settings
from src.core.constants import MILLISECONDS_PER_SECOND
from src.core.error_context import sanitize_sql_params
from src.infrastructure.database.models import ContentTypeRecord

POOL_RECYCLE_SECONDS = 3600
COMMAND_TIMEOUT_SECONDS = 60
MAX_LOGGED_STATEMENT_LENGTH = 500

_statement_started: WeakKeyDictionary[ExecutionContext, float] = WeakKeyDictionary()


def _start_statement_timer(
    _conn: Connection,
    _cursor: DBAPICursor,
    _statement: str,
    _parameters: object,
    context: ExecutionContext,
    _executemany: bool,
) -> None:
    _statement_started[context] = time.perf_counter()


def _log_slow_statement(
    _conn: Connection,
    cursor: DBAPICursor,
    statement: str,
    parameters: object,
    context: ExecutionContext,
    executemany: bool,
) -> None:
    started = _statement_started.pop(context, None)
    if started is None:
        return

    threshold_ms = get_settings().log_config.slow_query_threshold_ms
    duration_ms = (time.perf_counter() - started) * MILLISECONDS_PER_SECOND
    if duration_ms < threshold_ms:
        return

    query = " ".join(statement.split())[:MAX_LOGGED_STATEMENT_LENGTH]
    logger.bind(
        query=query,
        duration_ms=round(duration_ms, 2),
        threshold_ms=threshold_ms,
        rows_affected=getattr(cursor, "rowcount", -1),
        parameters=sanitize_sql_params(parameters),
        executemany=executemany,
    ).warning("Slow content query ({:.2f}ms): {:.100}", duration_ms, query)


def engine_options(database_url: str, config: DatabaseConfig) -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine`` suited to the driver."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_size": config.pool_size,
        "max_overflow": config.max_overflow,
        "pool_timeout": config.pool_timeout,
        "pool_pre_ping": config.pool_pre_ping,
        "pool_recycle": POOL_RECYCLE_SECONDS,
        "connect_args": {
            "server_settings": {"jit": "off"},
            "command_timeout": COMMAND_TIMEOUT_SECONDS,
        },
    }


def create_database_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine behind the SQL stores.

    Args:
        database_url: Overrides ``database_config.database_url``.

    Returns:
        AsyncEngine: Engine with driver-specific pooling.
    """
    settings = get_settings()
    config = settings.database_config
    url = database_url or config.database_url

    engine = create_async_engine(url, echo=config.echo, **engine_options(url, config))

    sql_logging = settings.log_config.enable_sql_logging
    if sql_logging:
        sync_engine = engine.sync_engine
        event.listen(sync_engine, "before_cursor_execute", _start_statement_timer)
        event.listen(sync_engine, "after_cursor_execute", _log_slow_statement)

    logger.info(
        "Database engine ready ({})",
        engine.url.get_backend_name(),
        sql_logging=sql_logging,
    )
    return engine


class _DatabaseManager:
    """Lazily created engine and session factory shared by the process."""

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_database_engine()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False
            )
        return self._session_factory

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")
        self.reset()

    def reset(self) -> None:
        """Drop references without disposing; lets tests switch databases."""
        self._engine = None
        self._session_factory = None


_db_manager = _DatabaseManager()


def get_engine() -> AsyncEngine:
    """Process-wide async engine."""
    return _db_manager.engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Process-wide session factory."""
    return _db_manager.session_factory


@asynccontextmanager
async def get_async_session(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession]:
    """Unit of work for one store operation.

    Commits when the block completes and rolls back if it raises.

    Example:
        async with get_async_session(factory) as session:
            record = await session.get(ContentEntryRecord, entry_id)
    """
    factory = session_factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            logger.debug("Content store transaction rolled back")
            raise
        await session.commit()


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create the content type, field and entry tables if missing."""
    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(ContentTypeRecord.metadata.create_all)
    logger.info("Content tables ensured")


async def close_database() -> None:
    """Dispose of the process-wide engine."""
    await _db_manager.close()


async def check_database_connection(
    engine: AsyncEngine | None = None,
) -> tuple[bool, str | None]:
    """Run ``SELECT 1`` against the database.

    Returns:
        tuple[bool, str | None]: Whether it answered, and the error otherwise.
    """
    try:
        async with (engine or get_engine()).connect() as conn:
            await conn.scalar(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return False, str(exc)
    return True, None
