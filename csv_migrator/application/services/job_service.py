"""
Job service.

Read side of the job store: status snapshots with derived percentage, job
listings and audit listings. Reads never lock; a snapshot reflects the last
committed counters.

Dependencies: csv_migrator.boundary.db.CRUD, csv_migrator.models.job
System role: Job status queries for the API
"""

import math
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from csv_migrator.boundary.db.CRUD.audit_log_crud import audit_log_crud
from csv_migrator.boundary.db.CRUD.job_crud import job_crud
from csv_migrator.boundary.db.models.audit_log_model import AuditAction, AuditLogModel
from csv_migrator.boundary.db.models.job_model import JobModel, JobStatus
from csv_migrator.core.exceptions import JobNotFoundError
from csv_migrator.core.progress import build_progress_event, calculate_percentage
from csv_migrator.models.job import (
    AuditLogListResponse,
    AuditLogResponse,
    JobListResponse,
    JobStatusResponse,
    Pagination,
)
from csv_migrator.models.progress import ProgressEvent


def to_status_response(job: JobModel) -> JobStatusResponse:
    """Build the API snapshot of a job."""
    return JobStatusResponse(
        id=str(job.id),
        lane=job.lane,
        filename=job.filename,
        file_path=job.file_path,
        checksum=job.checksum,
        status=job.status.value,
        total_rows=job.total_rows,
        processed_rows=job.processed_rows,
        total_chunks=job.total_chunks,
        processed_chunks=job.processed_chunks,
        last_processed_chunk=job.last_processed_chunk,
        retry_count=job.retry_count,
        max_retries=job.max_retries,
        percentage=(
            100
            if job.status == JobStatus.COMPLETED
            else calculate_percentage(job.processed_rows, job.total_rows)
        ),
        error=job.error,
        created_at=job.created_at,
        updated_at=job.updated_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
    )


def to_audit_response(entry: AuditLogModel) -> AuditLogResponse:
    return AuditLogResponse(
        id=str(entry.id),
        action=entry.action.value,
        job_id=str(entry.job_id) if entry.job_id else None,
        meta=entry.meta or {},
        created_at=entry.created_at,
    )


def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class JobService:
    """
    Job status queries.

    Provides abstraction over JobCRUD and AuditLogCRUD for the API layer.
    """

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize job service.

        Args:
            db: AsyncSession for database operations
        """
        self.db = db

    async def get_job(self, job_id: UUID) -> JobStatusResponse:
        """
        Current snapshot of a job.

        Raises:
            JobNotFoundError: No job with this id
        """
        job = await job_crud.get_by_id(self.db, job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return to_status_response(job)

    async def get_progress(self, job_id: UUID) -> ProgressEvent:
        """
        Progress of a job derived from its durable counters.

        Raises:
            JobNotFoundError: No job with this id
        """
        job = await job_crud.get_by_id(self.db, job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        percentage = 100 if job.status == JobStatus.COMPLETED else None
        message = job.error if job.status == JobStatus.FAILED and job.error else None
        return build_progress_event(
            job.id,
            job.processed_rows,
            job.total_rows,
            job.status.value,
            message=message,
            percentage=percentage,
        )

    async def list_jobs(
        self,
        page: int = 1,
        limit: int = 20,
        status: JobStatus | None = None,
    ) -> JobListResponse:
        """Paginated job listing, newest first."""
        jobs, total = await job_crud.list_recent(
            self.db, limit=limit, offset=(page - 1) * limit, status=status
        )
        return JobListResponse(
            items=[to_status_response(job) for job in jobs],
            pagination=_pagination(page, limit, total),
        )

    async def list_audit_logs(
        self,
        page: int = 1,
        limit: int = 50,
        job_id: UUID | None = None,
        action: AuditAction | None = None,
    ) -> AuditLogListResponse:
        """Paginated audit listing, newest first."""
        entries, total = await audit_log_crud.list_recent(
            self.db, limit=limit, offset=(page - 1) * limit, job_id=job_id, action=action
        )
        return AuditLogListResponse(
            items=[to_audit_response(entry) for entry in entries],
            pagination=_pagination(page, limit, total),
        )
