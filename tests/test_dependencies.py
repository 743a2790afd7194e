"""
Test suite for dependency injection container.

Tests that factory functions hand out the runtime's long-lived components
and request-scoped services.

System role: Verification of DI container
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from csv_migrator.api.deps import (
    get_broadcaster,
    get_db,
    get_field_filter_provider,
    get_ingestion_service,
    get_job_queue,
    get_job_service,
    get_runtime,
    get_settings_dependency,
)
from csv_migrator.application.runtime import MigrationRuntime
from csv_migrator.application.services import JobService


@pytest.fixture
def runtime(test_settings):
    """Unstarted runtime; nothing here touches the database."""
    return MigrationRuntime(test_settings)


class TestRuntimeDependencies:
    """Test component accessors."""

    def test_get_runtime_should_read_app_state(self, runtime):
        connection = MagicMock()
        connection.app.state.runtime = runtime

        assert get_runtime(connection) is runtime

    def test_component_accessors(self, runtime, test_settings):
        assert get_settings_dependency(runtime) is test_settings
        assert get_job_queue(runtime) is runtime.queue
        assert get_ingestion_service(runtime) is runtime.ingestion
        assert get_broadcaster(runtime) is runtime.broadcaster
        assert get_field_filter_provider(runtime) is runtime.field_filter


class TestServiceDependencies:
    """Test request-scoped services."""

    @pytest.mark.asyncio
    async def test_get_db_should_yield_session(self, runtime):
        generator = get_db(runtime)

        session = await generator.__anext__()

        assert isinstance(session, AsyncSession)
        await generator.aclose()
        await runtime.engine.dispose()

    def test_get_job_service_should_wrap_session(self):
        session = MagicMock(spec=AsyncSession)

        service = get_job_service(session)

        assert isinstance(service, JobService)
        assert service.db is session
