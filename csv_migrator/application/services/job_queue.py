"""
Job queue dispatcher.

Database-backed queue over the job store: producers ``add`` jobs, a single
cooperative polling loop claims the oldest eligible job, hands it to the
processing function and records the outcome. Claims, completions and
retries are conditional updates, so the job store stays the only source of
truth and several dispatcher processes can share a lane.

Dependencies: sqlalchemy, csv_migrator.boundary.db, csv_migrator.application.services.audit_service
System role: Job lifecycle state machine and dispatch loop
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from csv_migrator.application.progress_broadcaster import ProgressBroadcaster
from csv_migrator.application.services.audit_service import AuditService
from csv_migrator.boundary.db.base import utcnow
from csv_migrator.boundary.db.CRUD.job_crud import job_crud
from csv_migrator.boundary.db.models.audit_log_model import AuditAction
from csv_migrator.boundary.db.models.job_model import DEFAULT_LANE, JobModel, JobStatus
from csv_migrator.core.exceptions import (
    DuplicateFileError,
    InvalidJobStateError,
    JobNotFoundError,
    is_fatal,
)
from csv_migrator.core.progress import build_progress_event
from csv_migrator.models.job import QueueStats
from csv_migrator.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

ProcessFn = Callable[[JobModel], Awaitable[dict[str, Any] | None]]


class JobQueue:
    """
    Polling job queue for one lane.

    Attributes:
        lane: Default lane for add / get_next_job / polling
        poll_interval: Seconds between dispatch attempts
        max_retries: Retry budget copied onto new jobs
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lane: str = DEFAULT_LANE,
        poll_interval: float = 5.0,
        max_retries: int = 3,
        broadcaster: ProgressBroadcaster | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.lane = lane
        self.poll_interval = poll_interval
        self.max_retries = max_retries
        self._broadcaster = broadcaster
        self._processing: set[UUID] = set()
        self._poll_task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def processing(self) -> frozenset[UUID]:
        """Jobs this process is currently handling. Diagnostics only."""
        return frozenset(self._processing)

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def add(
        self,
        filename: str,
        file_path: str,
        checksum: str,
        lane: str | None = None,
        session: AsyncSession | None = None,
        **meta: Any,
    ) -> JobModel:
        """
        Create a PENDING job and record an UPLOAD audit entry.

        Args:
            filename: Original filename
            file_path: Location of the CSV
            checksum: Content checksum (unique across jobs)
            lane: Lane to enqueue on (defaults to the queue's lane)
            session: Join an open transaction instead of committing; the
                caller commits
            **meta: Extra UPLOAD audit metadata

        Returns:
            JobModel: The created job

        Raises:
            DuplicateFileError: Another job already owns ``checksum``
        """
        if session is not None:
            return await self._create_job(session, filename, file_path, checksum, lane, meta)

        async with self._session_factory() as own_session:
            job = await self._create_job(own_session, filename, file_path, checksum, lane, meta)
            await own_session.commit()
        return job

    async def _create_job(
        self,
        session: AsyncSession,
        filename: str,
        file_path: str,
        checksum: str,
        lane: str | None,
        meta: dict[str, Any],
    ) -> JobModel:
        try:
            job = await job_crud.create(
                session,
                lane=lane or self.lane,
                filename=filename,
                file_path=file_path,
                checksum=checksum,
                status=JobStatus.PENDING,
                max_retries=self.max_retries,
            )
        except IntegrityError as e:
            await session.rollback()
            raise DuplicateFileError(checksum) from e

        await AuditService(session).record(
            AuditAction.UPLOAD,
            job.id,
            filename=filename,
            filePath=file_path,
            checksum=checksum,
            **meta,
        )
        logger.info(
            f"{__name__}:add - Job queued: {filename}",
            extra={"job_id": str(job.id), "lane": job.lane},
        )
        return job

    async def get_next_job(self, lane: str | None = None) -> JobModel | None:
        """
        Claim the oldest eligible job of a lane.

        Returns:
            JobModel now RUNNING, or None when nothing is eligible or another
            dispatcher claimed the candidate first
        """
        lane = lane or self.lane
        async with self._session_factory() as session:
            candidate = await job_crud.get_next_eligible(session, lane)
            if candidate is None:
                return None

            values: dict[str, Any] = {}
            if candidate.started_at is None:
                values["started_at"] = utcnow()

            await AuditService(session).record(
                AuditAction.START,
                candidate.id,
                filename=candidate.filename,
                retryCount=candidate.retry_count,
                resumed=candidate.status == JobStatus.RUNNING,
                lastProcessedChunk=candidate.last_processed_chunk,
            )
            job = await job_crud.claim(session, candidate, **values)
            if job is None:
                await session.rollback()
                logger.info(
                    f"{__name__}:get_next_job - Lost claim race",
                    extra={"job_id": str(candidate.id), "lane": lane},
                )
                return None
            await session.commit()

        self._processing.add(job.id)
        logger.info(
            f"{__name__}:get_next_job - Claimed job {job.filename}",
            extra={"job_id": str(job.id), "lane": lane, "retry_count": job.retry_count},
        )
        return job

    async def complete_job(
        self,
        job_id: UUID,
        result: dict[str, Any] | None = None,
    ) -> JobModel | None:
        """
        Mark a RUNNING job COMPLETED and emit the final 100% event.

        Returns:
            The completed job, or None when it was no longer RUNNING
        """
        try:
            async with self._session_factory() as session:
                await AuditService(session).record(AuditAction.COMPLETE, job_id, **(result or {}))
                job = await job_crud.conditional_update(
                    session,
                    job_id,
                    [JobStatus.RUNNING],
                    status=JobStatus.COMPLETED,
                    completed_at=utcnow(),
                    error=None,
                )
                if job is None:
                    await session.rollback()
                    logger.warning(
                        f"{__name__}:complete_job - Job not RUNNING, completion ignored",
                        extra={"job_id": str(job_id)},
                    )
                    return None
                await session.commit()
        finally:
            self._processing.discard(job_id)

        logger.info(f"{__name__}:complete_job - Job completed", extra={"job_id": str(job_id)})
        self._emit(job, percentage=100, message="Migration completed")
        return job

    async def fail_job(
        self,
        job_id: UUID,
        error: BaseException | str,
    ) -> JobModel | None:
        """
        Record a failed attempt.

        Increments ``retry_count``. While it stays below ``max_retries`` the
        job returns to PENDING with a RETRY entry; otherwise it becomes
        FAILED with a FAILED entry. Fatal errors exhaust the budget at once.

        Returns:
            The updated job, or None when it was no longer RUNNING
        """
        message = getattr(error, "message", None) or str(error)
        fatal = isinstance(error, BaseException) and is_fatal(error)
        try:
            async with self._session_factory() as session:
                current = await job_crud.get_by_id(session, job_id, fresh=True)
                if current is None:
                    raise JobNotFoundError(job_id)

                new_count = current.max_retries if fatal else current.retry_count + 1
                if new_count < current.max_retries:
                    action, status = AuditAction.RETRY, JobStatus.PENDING
                else:
                    action, status = AuditAction.FAILED, JobStatus.FAILED

                await AuditService(session).record(
                    action,
                    job_id,
                    retryCount=new_count,
                    maxRetries=current.max_retries,
                    error=message,
                    fatal=fatal,
                )
                job = await job_crud.conditional_update(
                    session,
                    job_id,
                    [JobStatus.RUNNING],
                    JobModel.retry_count == current.retry_count,
                    status=status,
                    retry_count=new_count,
                    error=message,
                )
                if job is None:
                    await session.rollback()
                    logger.warning(
                        f"{__name__}:fail_job - Job changed concurrently, failure not recorded",
                        extra={"job_id": str(job_id)},
                    )
                    return None
                await session.commit()
        finally:
            self._processing.discard(job_id)

        logger.warning(
            f"{__name__}:fail_job - Job {status.value}: {message}",
            extra={"job_id": str(job_id), "retry_count": new_count},
        )
        self._emit(job, message=f"Migration failed: {message}")
        return job

    async def run_once(self, process_fn: ProcessFn, lane: str | None = None) -> JobModel | None:
        """
        One dispatch cycle: claim a job, process it, record the outcome.

        Never raises; this is the loop's error boundary.

        Returns:
            The job handled in this cycle, or None when idle
        """
        try:
            job = await self.get_next_job(lane)
        except Exception as e:
            log_exception_with_context(logger, f"{__name__}:run_once - Claim failed", e, lane=lane or self.lane)
            return None

        if job is None:
            logger.debug(f"{__name__}:run_once - No eligible job", extra={"lane": lane or self.lane})
            return None

        try:
            result = await process_fn(job)
        except Exception as e:
            log_exception_with_context(logger, f"{__name__}:run_once - Processing failed", e, job_id=job.id)
            try:
                await self.fail_job(job.id, e)
            except Exception as fail_error:
                log_exception_with_context(
                    logger, f"{__name__}:run_once - Could not record failure", fail_error, job_id=job.id
                )
            return job

        try:
            await self.complete_job(job.id, result)
        except Exception as e:
            log_exception_with_context(logger, f"{__name__}:run_once - Could not complete job", e, job_id=job.id)
        return job

    async def _poll_loop(self, process_fn: ProcessFn, lane: str | None, stop_event: asyncio.Event) -> None:
        logger.info(f"{__name__}:_poll_loop - Polling lane {lane or self.lane} every {self.poll_interval}s")
        while not stop_event.is_set():
            await self.run_once(process_fn, lane)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info(f"{__name__}:_poll_loop - Polling stopped")

    def start_polling(self, process_fn: ProcessFn, lane: str | None = None) -> None:
        """
        Start the dispatch loop in the background. A second call while
        polling is a no-op.
        """
        if self.is_polling:
            logger.info(f"{__name__}:start_polling - Already polling, ignoring")
            return
        self._stop_event = asyncio.Event()
        self._poll_task = asyncio.create_task(
            self._poll_loop(process_fn, lane, self._stop_event),
            name=f"job-queue-{lane or self.lane}",
        )

    async def stop_polling(self) -> None:
        """
        Stop dispatching new jobs. A job already being processed runs to
        completion first. Safe to call when not polling.
        """
        if self._poll_task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        task, self._poll_task = self._poll_task, None
        await task

    async def get_stats(self, lane: str | None = None) -> QueueStats:
        """Job counts per status for a lane."""
        async with self._session_factory() as session:
            counts = await job_crud.count_by_status(session, lane or self.lane)
        return QueueStats(
            waiting=counts[JobStatus.PENDING],
            active=counts[JobStatus.RUNNING],
            completed=counts[JobStatus.COMPLETED],
            failed=counts[JobStatus.FAILED],
            paused=counts[JobStatus.PAUSED],
            total=sum(counts.values()),
            in_flight=len(self._processing),
        )

    async def pause_job(self, job_id: UUID) -> JobModel:
        """PENDING -> PAUSED."""
        return await self._transition(job_id, [JobStatus.PENDING], status=JobStatus.PAUSED)

    async def resume_job(self, job_id: UUID) -> JobModel:
        """PAUSED -> PENDING."""
        return await self._transition(job_id, [JobStatus.PAUSED], status=JobStatus.PENDING)

    async def retry_job(self, job_id: UUID) -> JobModel:
        """FAILED -> PENDING with a fresh retry budget."""
        return await self._transition(
            job_id,
            [JobStatus.FAILED],
            audit=AuditAction.RETRY,
            status=JobStatus.PENDING,
            retry_count=0,
            error=None,
        )

    async def _transition(
        self,
        job_id: UUID,
        expected: list[JobStatus],
        audit: AuditAction | None = None,
        **values: Any,
    ) -> JobModel:
        async with self._session_factory() as session:
            if audit is not None:
                await AuditService(session).record(audit, job_id, manual=True, retryCount=0)
            job = await job_crud.conditional_update(session, job_id, expected, **values)
            if job is None:
                await session.rollback()
                current = await job_crud.get_by_id(session, job_id)
                if current is None:
                    raise JobNotFoundError(job_id)
                raise InvalidJobStateError(
                    job_id,
                    current.status.value,
                    [status.value for status in expected],
                )
            await session.commit()

        logger.info(
            f"{__name__}:_transition - Job moved to {job.status.value}",
            extra={"job_id": str(job_id)},
        )
        return job

    def _emit(self, job: JobModel, message: str, percentage: int | None = None) -> None:
        if self._broadcaster is None:
            return
        self._broadcaster.emit(
            build_progress_event(
                job.id,
                job.processed_rows,
                job.total_rows,
                job.status.value,
                message=message,
                percentage=percentage,
            )
        )
