"""
Audit service.

Thin writer over the audit log: every lifecycle event is appended inside the
caller's transaction, ahead of the state change it describes, so a committed
transition always has its entry.

Dependencies: csv_migrator.boundary.db.CRUD, csv_migrator.boundary.db.models
System role: Append-only audit sink
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from csv_migrator.boundary.db.CRUD.audit_log_crud import audit_log_crud
from csv_migrator.boundary.db.models.audit_log_model import AuditAction, AuditLogModel

logger = logging.getLogger(__name__)


class AuditService:
    """Append audit entries within an existing session."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize audit service.

        Args:
            db: AsyncSession whose transaction the entries join
        """
        self.db = db

    async def record(
        self,
        action: AuditAction,
        job_id: UUID | None = None,
        **meta: Any,
    ) -> AuditLogModel:
        """
        Append an audit entry (flushed, committed by the caller).

        Args:
            action: Event type
            job_id: Job the event refers to, None for system events
            **meta: Event metadata (camelCase keys, as stored)

        Returns:
            AuditLogModel: The pending entry
        """
        entry = await audit_log_crud.append(self.db, action, job_id=job_id, meta=meta)
        logger.debug(
            f"{__name__}:record - {action.value}",
            extra={"job_id": str(job_id) if job_id else None, "action": action.value},
        )
        return entry
