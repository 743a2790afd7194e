"""
Migration runtime.

Builds the long-lived components from settings and wires them together:
engine and session factory, progress broadcaster, job queue, chunk
processor, field filter provider, ingestion service and scheduled import.
Both the API process and the standalone worker run one ``MigrationRuntime``.

Dependencies: csv_migrator.configs, csv_migrator.boundary.db, csv_migrator.application
System role: Composition root
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from csv_migrator.application.processing.chunk_processor import ChunkedBatchProcessor
from csv_migrator.application.progress_broadcaster import ProgressBroadcaster
from csv_migrator.application.scheduled_import import ScheduledImport
from csv_migrator.application.services.ingestion_service import IngestionService
from csv_migrator.application.services.job_queue import JobQueue
from csv_migrator.boundary.db.connection import (
    create_engine_from_settings,
    create_session_factory,
    init_models,
    wait_for_database,
)
from csv_migrator.boundary.db.models.job_model import JobModel
from csv_migrator.configs import Settings, get_settings
from csv_migrator.core.field_filter import FieldFilterProvider, RecordTransformer, make_transformer

logger = logging.getLogger(__name__)


class MigrationRuntime:
    """
    Owns the queue, processor and their collaborators for one process.

    Usage:
        runtime = MigrationRuntime(get_settings())
        await runtime.start(run_worker=True)
        ...
        await runtime.stop()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        engine: AsyncEngine | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.engine = engine or create_engine_from_settings(self.settings.database)
        self._owns_engine = engine is None
        self.session_factory = session_factory or create_session_factory(self.engine)

        self.field_filter = FieldFilterProvider(
            self.settings.field_filter.config_path,
            refresh_interval=self.settings.field_filter.refresh_interval,
        )
        self.broadcaster = ProgressBroadcaster(
            self.session_factory,
            poll_interval=self.settings.progress.poll_interval,
            queue_size=self.settings.progress.subscriber_queue_size,
        )
        self.queue = JobQueue(
            self.session_factory,
            lane=self.settings.queue.lane,
            poll_interval=self.settings.queue.poll_interval,
            max_retries=self.settings.queue.max_retries,
            broadcaster=self.broadcaster,
        )
        processing = self.settings.processing
        self.processor = ChunkedBatchProcessor(
            self.session_factory,
            chunk_size=processing.chunk_size,
            max_concurrency=processing.max_concurrency,
            insert_batch_size=processing.insert_batch_size,
            wave_timeout=processing.wave_timeout,
            transformer_factory=self.current_transformer,
            broadcaster=self.broadcaster,
        )
        self.ingestion = IngestionService(self.queue, self.session_factory)
        scheduler = self.settings.scheduler
        self.scheduled_import = ScheduledImport(
            self.ingestion,
            self.session_factory,
            directory=scheduler.directory,
            cron=scheduler.cron,
            timezone=scheduler.timezone,
            processed_dirname=scheduler.processed_dirname,
        )

    def current_transformer(self) -> RecordTransformer:
        """Record transformer bound to the current field filter snapshot."""
        return make_transformer(self.field_filter.snapshot())

    async def process_job(self, job: JobModel) -> dict[str, Any]:
        """Processing function handed to the polling loop."""
        result = await self.processor.process(job)
        return result.as_meta()

    async def start(self, run_worker: bool = True, run_scheduler: bool | None = None) -> None:
        """
        Reach the database, create tables and start background tasks.

        Args:
            run_worker: Start the polling dispatch loop
            run_scheduler: Start the scheduled import (defaults to the setting)
        """
        db = self.settings.database
        await wait_for_database(self.engine, db.connect_attempts, db.connect_retry_seconds)
        await init_models(self.engine)

        self.broadcaster.start()
        if run_worker:
            self.queue.start_polling(self.process_job)
        if run_scheduler if run_scheduler is not None else self.settings.scheduler.enabled:
            self.scheduled_import.start()
        logger.info(
            f"{__name__}:start - Runtime started",
            extra={"lane": self.queue.lane, "worker": run_worker},
        )

    async def stop(self) -> None:
        """Stop dispatching, wait for the in-flight job and release resources."""
        self.scheduled_import.stop()
        await self.queue.stop_polling()
        await self.broadcaster.stop()
        if self._owns_engine:
            await self.engine.dispose()
        logger.info(f"{__name__}:stop - Runtime stopped")
