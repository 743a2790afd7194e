"""
Job API endpoints.

Routes:
- GET /jobs - Paginated job list, newest first
- GET /jobs/stats - Job counts per status
- GET /jobs/{id} - Job status snapshot
- POST /jobs/{id}/pause - PENDING -> PAUSED
- POST /jobs/{id}/resume - PAUSED -> PENDING
- POST /jobs/{id}/retry - FAILED -> PENDING with a fresh retry budget
- GET /audit-logs - Paginated audit log, newest first

Dependencies: csv_migrator.application.services, csv_migrator.models
System role: Job status and administration HTTP API
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from csv_migrator.api.deps import get_job_queue, get_job_service
from csv_migrator.application.services.job_queue import JobQueue
from csv_migrator.application.services.job_service import JobService, to_status_response
from csv_migrator.boundary.db.models.audit_log_model import AuditAction
from csv_migrator.boundary.db.models.job_model import JobStatus
from csv_migrator.core.exceptions import InvalidJobStateError, JobNotFoundError
from csv_migrator.models.job import (
    AuditLogListResponse,
    JobListResponse,
    JobStatusResponse,
    QueueStats,
)

router = APIRouter(tags=["jobs"])


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: JobStatus | None = None,
    job_service: JobService = Depends(get_job_service),
) -> JobListResponse:
    """List jobs, newest first."""
    return await job_service.list_jobs(page=page, limit=limit, status=status)


@router.get("/jobs/stats", response_model=QueueStats)
async def get_queue_stats(queue: JobQueue = Depends(get_job_queue)) -> QueueStats:
    """
    Job counts per status for the queue's lane.

    ``inFlight`` counts jobs this process is handling right now.
    """
    return await queue.get_stats()


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    job_id: UUID,
    job_service: JobService = Depends(get_job_service),
) -> JobStatusResponse:
    """
    Get job status and progress.

    Raises:
        HTTPException(404): Job not found
    """
    try:
        return await job_service.get_job(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


async def _admin_transition(action, job_id: UUID) -> JobStatusResponse:
    try:
        job = await action(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidJobStateError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return to_status_response(job)


@router.post("/jobs/{job_id}/pause", response_model=JobStatusResponse)
async def pause_job(job_id: UUID, queue: JobQueue = Depends(get_job_queue)) -> JobStatusResponse:
    """Hold a waiting job; it is not picked up until resumed."""
    return await _admin_transition(queue.pause_job, job_id)


@router.post("/jobs/{job_id}/resume", response_model=JobStatusResponse)
async def resume_job(job_id: UUID, queue: JobQueue = Depends(get_job_queue)) -> JobStatusResponse:
    """Return a paused job to the queue."""
    return await _admin_transition(queue.resume_job, job_id)


@router.post("/jobs/{job_id}/retry", response_model=JobStatusResponse)
async def retry_job(job_id: UUID, queue: JobQueue = Depends(get_job_queue)) -> JobStatusResponse:
    """Requeue a failed job. It resumes after its last committed chunk."""
    return await _admin_transition(queue.retry_job, job_id)


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    job_id: UUID | None = Query(None, alias="jobId"),
    action: AuditAction | None = None,
    job_service: JobService = Depends(get_job_service),
) -> AuditLogListResponse:
    """List audit entries, newest first."""
    return await job_service.list_audit_logs(page=page, limit=limit, job_id=job_id, action=action)
