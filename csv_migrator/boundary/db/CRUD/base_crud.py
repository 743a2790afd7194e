"""
Base CRUD operations for SQLAlchemy models.

Generic keyed access shared by the job, record and audit log CRUD classes.
Methods flush but never commit; the caller owns the transaction.

Dependencies: sqlalchemy
System role: Foundation for all database CRUD operations
"""

from typing import Any, Generic, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from csv_migrator.boundary.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD(Generic[ModelT]):
    """
    Generic CRUD over one mapped model.

    Attributes:
        model: The SQLAlchemy model class to operate on
    """

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    async def create(self, session: AsyncSession, **values: Any) -> ModelT:
        """
        Insert one row and return it with server-side defaults loaded.

        Raises:
            IntegrityError: A unique constraint rejected the row (surfaces
                at flush, so callers can map it inside their transaction)
        """
        instance = self.model(**values)
        session.add(instance)
        await session.flush()
        await session.refresh(instance)
        return instance

    async def get_by_id(
        self,
        session: AsyncSession,
        id: UUID,
        fresh: bool = False,
    ) -> ModelT | None:
        """
        Load a row by primary key.

        Args:
            session: Async database session
            id: UUID primary key
            fresh: Re-read the row even if the session already holds a copy,
                so concurrent conditional updates are observed

        Returns:
            Model instance if found, None otherwise
        """
        stmt = select(self.model).where(self.model.id == id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        return (await session.execute(stmt)).scalar_one_or_none()

    async def get_all(
        self,
        session: AsyncSession,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[ModelT]:
        """Rows in insertion order, optionally paginated."""
        stmt = select(self.model).order_by(self.model.created_at).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return (await session.execute(stmt)).scalars().all()

    async def update_by_id(self, session: AsyncSession, id: UUID, **values: Any) -> ModelT | None:
        """
        Unconditionally overwrite columns of one row.

        State transitions go through ``JobCRUD.conditional_update``; this is
        for bookkeeping fields only.

        Returns:
            Updated model instance if found, None otherwise
        """
        stmt = (
            update(self.model)
            .where(self.model.id == id)
            .values(**values)
            .returning(self.model)
            .execution_options(synchronize_session="fetch", populate_existing=True)
        )
        return (await session.execute(stmt)).scalar_one_or_none()
