"""
Audit log ORM model.

Append-only record of significant lifecycle events. Written by the core,
never read back by it.

Dependencies: sqlalchemy, csv_migrator.boundary.db.base
System role: Observability sink for job lifecycle events
"""

import enum
import uuid

from sqlalchemy import JSON, Enum, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from csv_migrator.boundary.db.base import Base, TimestampMixin, UUIDMixin


class AuditAction(str, enum.Enum):
    """Audit event types."""

    UPLOAD = "UPLOAD"
    START = "START"
    INSERT = "INSERT"
    SKIP = "SKIP"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    RETRY = "RETRY"
    SCHEDULED = "SCHEDULED"
    SCHEDULED_ERROR = "SCHEDULED_ERROR"
    SCHEDULED_SYSTEM_ERROR = "SCHEDULED_SYSTEM_ERROR"


class AuditLogModel(Base, UUIDMixin, TimestampMixin):
    """
    Audit log entry.

    Attributes:
        action: Event type
        job_id: Job the event refers to; NULL for system-level events
        meta: Free-form event metadata
    """

    __tablename__ = "audit_logs"

    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction, native_enum=False, length=32),
        nullable=False,
        index=True,
    )
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        index=True,
    )
    meta: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
