"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory and file-backed databases, CSV file factories, test settings
Dependencies: pytest, pytest-asyncio, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

import uuid
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from csv_migrator.boundary.db.base import Base
from csv_migrator.boundary.db.connection import create_session_factory, init_models
from csv_migrator.configs import Settings
from csv_migrator.configs.database import DatabaseSettings
from csv_migrator.configs.field_filter import FieldFilterSettings
from csv_migrator.configs.processing import ProcessingSettings
from csv_migrator.configs.progress import ProgressSettings
from csv_migrator.configs.queue import QueueSettings
from csv_migrator.configs.scheduler import SchedulerSettings
from csv_migrator.configs.upload import UploadSettings

CSV_HEADER = "id,name,email"


def csv_content(count: int, start: int = 0) -> str:
    """CSV text with a header and ``count`` unique rows."""
    lines = [CSV_HEADER]
    lines.extend(f"{i},name{i},user{i}@example.com" for i in range(start, start + count))
    return "\n".join(lines) + "\n"


@pytest.fixture
async def test_async_db():
    """
    Create in-memory SQLite async database for testing.

    A single session on a StaticPool; only suitable for tests that never
    open a second session.

    Yields:
        AsyncSession: Test database session with cleanup
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_engine(tmp_path):
    """
    File-backed SQLite engine for tests that open concurrent sessions.

    Yields:
        AsyncEngine: Engine with all tables created
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"timeout": 30},
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory bound to the file-backed test database."""
    return create_session_factory(db_engine)


@pytest.fixture
def write_csv(tmp_path):
    """
    Factory writing CSV files under a temporary directory.

    Usage:
        path = write_csv("people.csv", rows=2500)
        path = write_csv("raw.csv", content="a,b\\n1,2\\n")
    """
    directory = tmp_path / "csv"
    directory.mkdir()

    def _write(name: str = "data.csv", rows: int = 10, start: int = 0, content: str | None = None) -> Path:
        path = directory / name
        path.write_text(content if content is not None else csv_content(rows, start), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def csv_text():
    """The CSV text builder, for tests that place files themselves."""
    return csv_content


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """
    Settings isolated under tmp_path: own SQLite file, no worker, no scheduler.

    Returns:
        Settings: Application settings for one test
    """
    return Settings(
        run_worker=False,
        database=DatabaseSettings(
            url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
            connect_attempts=1,
            connect_retry_seconds=0.1,
        ),
        queue=QueueSettings(poll_interval=0.05, max_retries=3),
        processing=ProcessingSettings(chunk_size=5, max_concurrency=2),
        progress=ProgressSettings(poll_interval=60),
        scheduler=SchedulerSettings(enabled=False, directory=str(tmp_path / "scheduled")),
        field_filter=FieldFilterSettings(
            config_path=str(tmp_path / "config" / "field-filter.json"),
            refresh_interval=0,
        ),
        upload=UploadSettings(directory=str(tmp_path / "uploads")),
    )


@pytest.fixture
def job_id():
    """Generate a test job ID."""
    return uuid.uuid4()
