"""
Audit log CRUD operations.

Append-only writes of lifecycle events plus the read queries used by the
audit listing endpoint and tests.

Dependencies: sqlalchemy, csv_migrator.boundary.db.models
System role: Audit sink persistence
"""

from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from csv_migrator.boundary.db.CRUD.base_crud import BaseCRUD
from csv_migrator.boundary.db.models.audit_log_model import AuditAction, AuditLogModel


class AuditLogCRUD(BaseCRUD[AuditLogModel]):
    """CRUD operations for AuditLogModel."""

    def __init__(self) -> None:
        """Initialize AuditLogCRUD with AuditLogModel."""
        super().__init__(AuditLogModel)

    async def append(
        self,
        session: AsyncSession,
        action: AuditAction,
        job_id: UUID | None = None,
        meta: dict[str, Any] | None = None,
    ) -> AuditLogModel:
        """
        Add an audit entry to the session's current transaction.

        Args:
            session: Async database session
            action: Event type
            job_id: Job the event refers to, None for system events
            meta: Event metadata

        Returns:
            AuditLogModel: The pending entry (flushed, not committed)
        """
        entry = AuditLogModel(action=action, job_id=job_id, meta=meta or {})
        session.add(entry)
        await session.flush()
        return entry

    async def list_recent(
        self,
        session: AsyncSession,
        limit: int,
        offset: int = 0,
        job_id: UUID | None = None,
        action: AuditAction | None = None,
    ) -> tuple[Sequence[AuditLogModel], int]:
        """
        Page through audit entries, newest first.

        Returns:
            tuple of (entries on this page, total matching entries)
        """
        stmt = select(AuditLogModel)
        count_stmt = select(func.count()).select_from(AuditLogModel)
        if job_id is not None:
            stmt = stmt.where(AuditLogModel.job_id == job_id)
            count_stmt = count_stmt.where(AuditLogModel.job_id == job_id)
        if action is not None:
            stmt = stmt.where(AuditLogModel.action == action)
            count_stmt = count_stmt.where(AuditLogModel.action == action)
        stmt = stmt.order_by(AuditLogModel.created_at.desc()).offset(offset).limit(limit)

        total = (await session.execute(count_stmt)).scalar_one()
        entries = (await session.execute(stmt)).scalars().all()
        return entries, total

    async def get_for_job(
        self,
        session: AsyncSession,
        job_id: UUID,
    ) -> Sequence[AuditLogModel]:
        """All entries for a job in the order they were written."""
        stmt = (
            select(AuditLogModel)
            .where(AuditLogModel.job_id == job_id)
            .order_by(AuditLogModel.created_at.asc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_actions(
        self,
        session: AsyncSession,
        action: AuditAction,
        job_id: UUID | None = None,
    ) -> int:
        """Count entries of one type, optionally for one job."""
        stmt = select(func.count()).select_from(AuditLogModel).where(AuditLogModel.action == action)
        if job_id is not None:
            stmt = stmt.where(AuditLogModel.job_id == job_id)
        return (await session.execute(stmt)).scalar_one()


audit_log_crud = AuditLogCRUD()
