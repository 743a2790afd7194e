"""ORM models."""

from csv_migrator.boundary.db.models.audit_log_model import AuditAction, AuditLogModel
from csv_migrator.boundary.db.models.job_model import (
    CLAIMABLE_STATUSES,
    DEFAULT_LANE,
    TERMINAL_STATUSES,
    JobModel,
    JobStatus,
)
from csv_migrator.boundary.db.models.record_model import RecordModel

__all__ = [
    "AuditAction",
    "AuditLogModel",
    "CLAIMABLE_STATUSES",
    "DEFAULT_LANE",
    "JobModel",
    "JobStatus",
    "RecordModel",
    "TERMINAL_STATUSES",
]
