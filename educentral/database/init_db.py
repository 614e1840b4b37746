"""
Database initialization and connection management.

This module owns the process-wide async engine and session factory:
1. Initializing the engine and verifying the connection
2. Creating the schema for deployments that do not run migrations
3. Handing out sessions to request handlers and background tasks
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from educentral.common.logger import app_logger
from educentral.database.base import Base
# Registers every table on Base.metadata
from educentral.database import models  # noqa: F401

logger = app_logger.getChild("database.init_db")

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_engine() -> AsyncEngine:
    """Get the global async engine instance."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _engine


def get_session_factory() -> async_sessionmaker:
    """Get the global session factory."""
    if _session_factory is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _session_factory


def _engine_kwargs(database_url: str, echo: bool, pool_size: int,
                   max_overflow: int, pool_timeout: int) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"echo": echo}
    if database_url.startswith("sqlite"):
        # aiosqlite connections are bound to the loop that opened them
        kwargs["poolclass"] = NullPool
    else:
        kwargs.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_pre_ping": True,
            "pool_recycle": 300,
        })
    return kwargs


async def initialize_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    create_tables: bool = False,
) -> AsyncEngine:
    """
    Initialize the async database engine.

    Args:
        database_url: Database connection URL
        echo: Whether to echo SQL statements
        pool_size: Connection pool size
        max_overflow: Maximum number of connections to allow above pool_size
        pool_timeout: Timeout for getting a connection from the pool
        create_tables: Whether to create missing tables after connecting

    Returns:
        AsyncEngine instance
    """
    global _engine, _session_factory

    logger.info(f"Initializing database with URL: {database_url.split('://')[0]}://...")

    _engine = create_async_engine(
        database_url,
        **_engine_kwargs(database_url, echo, pool_size, max_overflow, pool_timeout)
    )
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Failed to initialize async database: {e}")
        raise

    if create_tables:
        await create_all_tables()

    logger.info("Database engine initialized successfully")
    return _engine


async def create_all_tables() -> None:
    """Create every table that does not exist yet."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Ensured {len(Base.metadata.tables)} tables exist")


async def close_database() -> None:
    """Close the database engine and all connections."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine closed successfully")


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    Transactional session for code outside the request cycle.

    Commits when the block exits cleanly and rolls back on error.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency that provides an async database session.

    Yields:
        AsyncSession that is committed after the request handler returns
    """
    async with session_scope() as session:
        yield session
