"""
Scheduled directory import.

APScheduler cron job that scans a drop directory for CSV files and enqueues
each new one. A file is moved into the archive subdirectory in the same
transaction that creates its job, so the dispatcher only ever sees the
archived path. Duplicates stay where they are and are skipped on every run.

Dependencies: apscheduler, csv_migrator.application.services.ingestion_service
System role: Time-triggered job producer
"""

import asyncio
import logging
import shutil
import time
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from csv_migrator.application.services.audit_service import AuditService
from csv_migrator.application.services.ingestion_service import IngestionService
from csv_migrator.boundary.db.models.audit_log_model import AuditAction
from csv_migrator.boundary.db.models.job_model import JobModel
from csv_migrator.core.checksum import calculate_file_checksum_async
from csv_migrator.core.exceptions import DuplicateFileError

logger = logging.getLogger(__name__)

JOB_ID = "scheduled_import"


def list_csv_files(directory: Path) -> list[Path]:
    """CSV files directly inside ``directory`` (extension match is case-insensitive), sorted by name."""
    return sorted(
        path for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() == ".csv"
    )


def archive_file(path: Path, processed_dir: Path) -> Path:
    """Move ``path`` to ``processed_dir/<epoch-ms>_<name>``."""
    processed_dir.mkdir(parents=True, exist_ok=True)
    target = processed_dir / f"{int(time.time() * 1000)}_{path.name}"
    shutil.move(str(path), str(target))
    return target


class ScheduledImport:
    """
    Cron-driven scan of the scheduled import directory.

    Attributes:
        directory: Drop directory scanned for ``*.csv``
        processed_dir: Archive for enqueued files
        cron: Crontab expression
        timezone: Timezone the crontab is evaluated in
    """

    def __init__(
        self,
        ingestion: IngestionService,
        session_factory: async_sessionmaker[AsyncSession],
        directory: str | Path,
        cron: str = "0 2 * * *",
        timezone: str = "UTC",
        processed_dirname: str = "processed",
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._ingestion = ingestion
        self._session_factory = session_factory
        self.directory = Path(directory)
        self.processed_dir = self.directory / processed_dirname
        self.cron = cron
        self.timezone = timezone
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        """
        Register the scan and start the scheduler.

        Must be called from a running event loop.

        Raises:
            ValueError: Invalid crontab expression
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        self._scheduler.add_job(
            self.process_scheduled_imports,
            trigger=CronTrigger.from_crontab(self.cron, timezone=self.timezone),
            id=JOB_ID,
            name="Scheduled CSV import",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info(f"{__name__}:start - Scheduled import '{self.cron}' ({self.timezone}) on {self.directory}")

    def stop(self) -> None:
        """Stop the scheduler without waiting for a running scan."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info(f"{__name__}:stop - Scheduled import stopped")

    async def process_scheduled_imports(self) -> list[JobModel]:
        """
        Enqueue every new CSV file in the directory.

        Never raises; per-file failures are audited as SCHEDULED_ERROR and
        directory-level failures as SCHEDULED_SYSTEM_ERROR.

        Returns:
            list[JobModel]: Jobs created by this run
        """
        try:
            files = await asyncio.to_thread(list_csv_files, self.directory)
        except OSError as e:
            logger.exception(f"{__name__}:process_scheduled_imports - Cannot scan {self.directory}")
            await self._audit_error(AuditAction.SCHEDULED_SYSTEM_ERROR, directory=str(self.directory), error=str(e))
            return []

        if not files:
            logger.info(f"{__name__}:process_scheduled_imports - No CSV files found")
            return []

        logger.info(f"{__name__}:process_scheduled_imports - Found {len(files)} CSV files")
        jobs = []
        for path in files:
            try:
                job = await self._import_file(path)
            except Exception as e:
                logger.exception(f"{__name__}:process_scheduled_imports - Error importing {path.name}")
                await self._audit_error(AuditAction.SCHEDULED_ERROR, filename=path.name, error=str(e))
                continue
            if job is not None:
                jobs.append(job)
        return jobs

    async def _import_file(self, path: Path) -> JobModel | None:
        checksum = await calculate_file_checksum_async(path)

        async with self._session_factory() as session:
            try:
                job = await self._ingestion.submit_file(
                    path,
                    checksum=checksum,
                    session=session,
                    scheduled=True,
                )
            except DuplicateFileError:
                logger.info(f"{__name__}:_import_file - Duplicate file skipped: {path.name}")
                return None

            await AuditService(session).record(
                AuditAction.SCHEDULED,
                job.id,
                filename=path.name,
                checksum=checksum,
                filePath=str(path),
                scheduled=True,
            )
            archived = await asyncio.to_thread(archive_file, path, self.processed_dir)
            job.file_path = str(archived)
            try:
                await session.commit()
            except Exception:
                await asyncio.to_thread(shutil.move, str(archived), str(path))
                raise

        logger.info(
            f"{__name__}:_import_file - Scheduled import job created for {path.name}",
            extra={"job_id": str(job.id)},
        )
        return job

    async def _audit_error(self, action: AuditAction, **meta) -> None:
        try:
            async with self._session_factory() as session:
                await AuditService(session).record(action, None, **meta)
                await session.commit()
        except Exception:
            logger.exception(f"{__name__}:_audit_error - Could not record {action.value}")
