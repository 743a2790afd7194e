"""
Job domain models and schemas.

Request/response schemas for job status, listings and queue statistics.

Dependencies: pydantic
System role: Job status API contracts
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Pagination(BaseModel):
    """Page window over a listing."""

    page: int
    limit: int
    total: int
    pages: int


class JobStatusResponse(BaseModel):
    """Snapshot of a migration job."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    lane: str
    filename: str
    file_path: str
    checksum: str
    status: str
    total_rows: int
    processed_rows: int
    total_chunks: int
    processed_chunks: int
    last_processed_chunk: int
    retry_count: int
    max_retries: int
    percentage: int
    error: str | None = None
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None


class JobListResponse(BaseModel):
    """Paginated job listing, newest first."""

    items: list[JobStatusResponse]
    pagination: Pagination


class AuditLogResponse(BaseModel):
    """One audit log entry."""

    id: str
    action: str
    job_id: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paginated audit listing, newest first."""

    items: list[AuditLogResponse]
    pagination: Pagination


class QueueStats(BaseModel):
    """Job counts per status."""

    model_config = ConfigDict(populate_by_name=True)

    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    paused: int = 0
    total: int = 0
    in_flight: int = Field(default=0, serialization_alias="inFlight")


class UploadResponse(BaseModel):
    """Response returned once an uploaded file is queued."""

    success: bool = True
    job_id: str = Field(serialization_alias="jobId")
    status: str
    message: str


class PreviewResponse(BaseModel):
    """Headers and leading rows of an uploaded CSV that was not queued."""

    filename: str
    headers: list[str]
    rows: list[dict[str, Any]]
    preview_count: int = Field(serialization_alias="previewCount")
