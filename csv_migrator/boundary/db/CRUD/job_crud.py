"""
Job CRUD operations.

Provides Create, Read, Update operations for JobModel with the queue-specific
queries: dedup lookup, FIFO eligibility, compare-and-set transitions and
monotonic progress advancement.

Dependencies: sqlalchemy, csv_migrator.boundary.db.models
System role: Durable job store
"""

from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from csv_migrator.boundary.db.CRUD.base_crud import BaseCRUD
from csv_migrator.boundary.db.models.job_model import (
    CLAIMABLE_STATUSES,
    JobModel,
    JobStatus,
)


def _at_least(column, value: int):
    """SQL expression keeping ``column`` unchanged unless ``value`` is larger."""
    return case((column < value, value), else_=column)


class JobCRUD(BaseCRUD[JobModel]):
    """
    CRUD operations for JobModel.

    Extends BaseCRUD with dispatch and progress queries used by the job
    queue and the batch processor.
    """

    def __init__(self) -> None:
        """Initialize JobCRUD with JobModel."""
        super().__init__(JobModel)

    async def get_by_checksum(
        self,
        session: AsyncSession,
        checksum: str,
    ) -> JobModel | None:
        """
        Retrieve the job owning a content checksum.

        Args:
            session: Async database session
            checksum: SHA-256 hex digest of the file content

        Returns:
            JobModel if found, None otherwise
        """
        stmt = select(JobModel).where(JobModel.checksum == checksum)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_next_eligible(
        self,
        session: AsyncSession,
        lane: str,
    ) -> JobModel | None:
        """
        Oldest job that may be dispatched.

        Eligible means PENDING or RUNNING (a RUNNING job is one whose worker
        died) with retry budget left. FIFO by creation time.

        Args:
            session: Async database session
            lane: Queue lane to pick from

        Returns:
            JobModel if one is eligible, None otherwise
        """
        stmt = (
            select(JobModel)
            .where(
                JobModel.lane == lane,
                JobModel.status.in_(CLAIMABLE_STATUSES),
                JobModel.retry_count < JobModel.max_retries,
            )
            .order_by(JobModel.created_at.asc(), JobModel.id.asc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def conditional_update(
        self,
        session: AsyncSession,
        id: UUID,
        expected_statuses: Iterable[JobStatus],
        *criteria: Any,
        **values: Any,
    ) -> JobModel | None:
        """
        Update a job only while its status is one of ``expected_statuses``.

        The check and the write happen in one statement, so of two callers
        racing for the same transition exactly one gets a row back.

        Args:
            session: Async database session
            id: Job UUID
            expected_statuses: Statuses the job must currently have
            *criteria: Extra WHERE clauses
            **values: Fields to update

        Returns:
            Updated JobModel, or None when the job is missing or its status
            did not match
        """
        stmt = (
            update(JobModel)
            .where(
                JobModel.id == id,
                JobModel.status.in_(list(expected_statuses)),
                *criteria,
            )
            .values(**values)
            .returning(JobModel)
            .execution_options(synchronize_session="fetch", populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def claim(
        self,
        session: AsyncSession,
        job: JobModel,
        **values: Any,
    ) -> JobModel | None:
        """
        Transition an eligible job to RUNNING.

        Args:
            session: Async database session
            job: Job returned by :meth:`get_next_eligible`
            **values: Extra fields to set together with the status

        Returns:
            Claimed JobModel, or None when another dispatcher won the race or
            the job stopped being eligible
        """
        return await self.conditional_update(
            session,
            job.id,
            CLAIMABLE_STATUSES,
            JobModel.retry_count < JobModel.max_retries,
            status=JobStatus.RUNNING,
            **values,
        )

    async def advance_progress(
        self,
        session: AsyncSession,
        id: UUID,
        processed_rows: int,
        processed_chunks: int,
        last_processed_chunk: int,
    ) -> None:
        """
        Raise the progress counters of a job, never lowering them.

        Each counter becomes ``max(stored, given)`` in a single statement so
        concurrent chunk commits cannot move progress backwards.

        Args:
            session: Async database session
            id: Job UUID
            processed_rows: Candidate processed row count
            processed_chunks: Candidate committed chunk count
            last_processed_chunk: Candidate resumption watermark
        """
        stmt = (
            update(JobModel)
            .where(JobModel.id == id)
            .values(
                processed_rows=_at_least(JobModel.processed_rows, processed_rows),
                processed_chunks=_at_least(JobModel.processed_chunks, processed_chunks),
                last_processed_chunk=_at_least(JobModel.last_processed_chunk, last_processed_chunk),
            )
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    async def count_by_status(
        self,
        session: AsyncSession,
        lane: str | None = None,
    ) -> dict[JobStatus, int]:
        """
        Count jobs per status.

        Args:
            session: Async database session
            lane: Restrict to one lane (all lanes when None)

        Returns:
            dict mapping every JobStatus to its count
        """
        stmt = select(JobModel.status, func.count()).group_by(JobModel.status)
        if lane is not None:
            stmt = stmt.where(JobModel.lane == lane)
        result = await session.execute(stmt)
        counts = {status: 0 for status in JobStatus}
        for status, count in result.all():
            counts[JobStatus(status)] = count
        return counts

    async def list_recent(
        self,
        session: AsyncSession,
        limit: int,
        offset: int = 0,
        status: JobStatus | None = None,
    ) -> tuple[Sequence[JobModel], int]:
        """
        Page through jobs, newest first.

        Args:
            session: Async database session
            limit: Page size
            offset: Rows to skip
            status: Optional status filter

        Returns:
            tuple of (jobs on this page, total matching jobs)
        """
        stmt = select(JobModel)
        count_stmt = select(func.count()).select_from(JobModel)
        if status is not None:
            stmt = stmt.where(JobModel.status == status)
            count_stmt = count_stmt.where(JobModel.status == status)
        stmt = stmt.order_by(JobModel.created_at.desc()).offset(offset).limit(limit)

        total = (await session.execute(count_stmt)).scalar_one()
        jobs = (await session.execute(stmt)).scalars().all()
        return jobs, total

    async def get_in_progress(self, session: AsyncSession) -> Sequence[JobModel]:
        """Jobs that are waiting or running, with fresh state."""
        stmt = (
            select(JobModel)
            .where(JobModel.status.in_(CLAIMABLE_STATUSES))
            .order_by(JobModel.created_at.asc())
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()


job_crud = JobCRUD()
