"""Application services."""

from csv_migrator.application.services.audit_service import AuditService
from csv_migrator.application.services.ingestion_service import IngestionService
from csv_migrator.application.services.job_queue import JobQueue
from csv_migrator.application.services.job_service import JobService

__all__ = ["AuditService", "IngestionService", "JobQueue", "JobService"]
