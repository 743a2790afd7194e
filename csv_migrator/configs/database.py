"""
Database configuration settings.

Connection parameters for the SQLAlchemy async engine backing the
job store, the audit log and the destination record store.

Dependencies: pydantic, pydantic_settings
System role: Database connection configuration for ORM
"""

from pydantic import Field

from csv_migrator.configs.base import BaseSettings, settings_config


class DatabaseSettings(BaseSettings):
    """Async database configuration (SQLite or PostgreSQL)."""

    model_config = settings_config("DATABASE_")

    url: str = Field(
        default="sqlite+aiosqlite:///./csv_migrator.db",
        description="SQLAlchemy async database URL",
    )
    echo_sql: bool = Field(default=False, description="Echo SQL statements to logs")

    pool_size: int = Field(default=10, ge=1, description="Connection pool size")
    max_overflow: int = Field(default=20, ge=0, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, ge=1, description="Connection pool timeout in seconds")

    connect_attempts: int = Field(
        default=5,
        ge=1,
        description="Attempts made to reach the database at startup",
    )
    connect_retry_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Wait between startup connection attempts",
    )

    @property
    def async_database_url(self) -> str:
        """
        Normalise the configured URL to an async driver URL.

        Plain ``postgres://`` / ``postgresql://`` URLs are rewritten to use
        asyncpg, plain ``sqlite://`` URLs to use aiosqlite.

        Returns:
            str: SQLAlchemy async-compatible database URL
        """
        url = self.url
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite://"):
            return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured backend is SQLite."""
        return self.async_database_url.startswith("sqlite")
