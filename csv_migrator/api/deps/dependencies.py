"""
Dependency injection container.

Factory functions for FastAPI dependencies. Long-lived components live on
the ``MigrationRuntime`` stored in ``app.state.runtime`` by the lifespan;
request-scoped services get their own database session.

Dependencies: fastapi, csv_migrator.application, csv_migrator.configs
System role: DI container for service injection
"""

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from csv_migrator.application.progress_broadcaster import ProgressBroadcaster
from csv_migrator.application.runtime import MigrationRuntime
from csv_migrator.application.services.ingestion_service import IngestionService
from csv_migrator.application.services.job_queue import JobQueue
from csv_migrator.application.services.job_service import JobService
from csv_migrator.configs import Settings
from csv_migrator.core.field_filter import FieldFilterProvider


def get_runtime(connection: HTTPConnection) -> MigrationRuntime:
    """Runtime created by the application lifespan (HTTP and WebSocket)."""
    return connection.app.state.runtime


def get_settings_dependency(runtime: MigrationRuntime = Depends(get_runtime)) -> Settings:
    """Settings the runtime was built from."""
    return runtime.settings


async def get_db(
    runtime: MigrationRuntime = Depends(get_runtime),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Async database session scoped to the request.

    Yields:
        AsyncSession: Session closed after the route completes
    """
    async with runtime.session_factory() as session:
        yield session


def get_job_queue(runtime: MigrationRuntime = Depends(get_runtime)) -> JobQueue:
    return runtime.queue


def get_ingestion_service(runtime: MigrationRuntime = Depends(get_runtime)) -> IngestionService:
    return runtime.ingestion


def get_broadcaster(runtime: MigrationRuntime = Depends(get_runtime)) -> ProgressBroadcaster:
    return runtime.broadcaster


def get_field_filter_provider(runtime: MigrationRuntime = Depends(get_runtime)) -> FieldFilterProvider:
    return runtime.field_filter


def get_job_service(db: AsyncSession = Depends(get_db)) -> JobService:
    """
    Get job service instance.

    Args:
        db: Async database session (injected via Depends)

    Returns:
        JobService: Job service instance
    """
    return JobService(db=db)
