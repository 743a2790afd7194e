"""
Job ORM model.

One row per migration attempt of a CSV file (retries reuse the row).
Single source of truth for status, progress counters and resumption markers.

Dependencies: sqlalchemy, csv_migrator.boundary.db.base
System role: Durable job store record
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from csv_migrator.boundary.db.base import Base, TimestampMixin, UUIDMixin

DEFAULT_LANE = "csv-migration"


class JobStatus(str, enum.Enum):
    """
    Migration job lifecycle states.

    PENDING: Waiting for the dispatcher (new, or between retries)
    RUNNING: Claimed by a dispatcher; re-claimable after a worker crash
    COMPLETED: Every chunk committed (terminal)
    FAILED: Retry budget exhausted or fatal error (terminal)
    PAUSED: Administratively held; never picked up automatically
    """

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    PAUSED = "PAUSED"


CLAIMABLE_STATUSES = (JobStatus.PENDING, JobStatus.RUNNING)
TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


class JobModel(Base, UUIDMixin, TimestampMixin):
    """
    Migration job ORM model.

    Attributes:
        lane: Queue partition the job belongs to
        filename: Original filename of the source artifact
        file_path: Location of the CSV on disk (owned by the job, never deleted)
        checksum: SHA-256 of the file content; UNIQUE across all jobs
        status: Lifecycle state (see JobStatus)
        total_rows / processed_rows: Row progress; processed_rows <= total_rows
        total_chunks / processed_chunks: Chunk progress
        last_processed_chunk: Highest chunk index known committed, every
            chunk at or below it is skipped on resume (-1 = none)
        retry_count / max_retries: Automatic retry budget
        error: Last failure message, cleared on completion
        started_at: First PENDING -> RUNNING transition, set once
        completed_at: Completion timestamp, set once
    """

    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_lane_status_created", "lane", "status", "created_at"),
    )

    lane: Mapped[str] = mapped_column(String(100), nullable=False, default=DEFAULT_LANE)
    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    checksum: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, native_enum=False, length=16),
        nullable=False,
        default=JobStatus.PENDING,
        index=True,
    )

    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_chunks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_chunks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_processed_chunk: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)

    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=3)

    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<JobModel id={self.id} status={self.status.value} file={self.filename!r}>"
