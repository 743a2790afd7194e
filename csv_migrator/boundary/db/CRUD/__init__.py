"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from csv_migrator.boundary.db.CRUD import job_crud, audit_log_crud

    job = await job_crud.get_by_id(db, job_id)
"""

from csv_migrator.boundary.db.CRUD.audit_log_crud import AuditLogCRUD, audit_log_crud
from csv_migrator.boundary.db.CRUD.base_crud import BaseCRUD
from csv_migrator.boundary.db.CRUD.job_crud import JobCRUD, job_crud
from csv_migrator.boundary.db.CRUD.record_crud import BulkInsertResult, RecordCRUD, record_crud

__all__ = [
    "AuditLogCRUD",
    "audit_log_crud",
    "BaseCRUD",
    "BulkInsertResult",
    "JobCRUD",
    "job_crud",
    "RecordCRUD",
    "record_crud",
]
