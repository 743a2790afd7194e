"""
Database connection management.

Provides the async SQLAlchemy engine and session factory, schema creation
and a startup connectivity check.

Dependencies: sqlalchemy, tenacity, csv_migrator.configs
System role: Database connection lifecycle management
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from csv_migrator.boundary.db.base import Base
from csv_migrator.configs.database import DatabaseSettings

logger = logging.getLogger(__name__)

# Seconds a SQLite connection waits for a competing writer before failing.
SQLITE_BUSY_TIMEOUT = 30


def create_engine_from_settings(db_config: DatabaseSettings) -> AsyncEngine:
    """
    Create an async engine for the configured backend.

    PostgreSQL gets a sized connection pool with pre-ping; SQLite keeps the
    dialect's default pool and a busy timeout so concurrent chunk writers
    queue instead of failing.

    Args:
        db_config: Database settings

    Returns:
        AsyncEngine: Configured async SQLAlchemy engine
    """
    url = db_config.async_database_url
    if db_config.is_sqlite:
        return create_async_engine(
            url,
            echo=db_config.echo_sql,
            connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
        )

    return create_async_engine(
        url,
        echo=db_config.echo_sql,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create an async session factory bound to ``engine``.

    Sessions use explicit transactions and keep attributes loaded after
    commit so returned models stay readable outside the session.
    """
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping(engine: AsyncEngine) -> None:
    """
    Run a trivial query against the database.

    Raises:
        SQLAlchemyError: Database unreachable
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def wait_for_database(
    engine: AsyncEngine,
    attempts: int = 5,
    wait_seconds: float = 2.0,
) -> None:
    """
    Block until the database answers, retrying transient connection errors.

    Args:
        engine: Engine to check
        attempts: Maximum connection attempts
        wait_seconds: Fixed wait between attempts

    Raises:
        OperationalError: Database still unreachable after the last attempt
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type((OperationalError, InterfaceError, OSError)),
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(wait_seconds),
        before_sleep=lambda retry_state: logger.warning(
            f"{__name__}:wait_for_database - Attempt {retry_state.attempt_number}/{attempts} failed, retrying"
        ),
        reraise=True,
    ):
        with attempt:
            await ping(engine)
    logger.info(f"{__name__}:wait_for_database - Database reachable")

