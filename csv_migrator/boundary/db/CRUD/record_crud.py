"""
Migrated record CRUD operations.

Unordered bulk insert into the destination store: rows whose positional key
already exists (a replayed chunk) are skipped by the database and reported
as duplicates, every other row is written. Duplicates never abort the batch.

Dependencies: sqlalchemy, csv_migrator.boundary.db.models, csv_migrator.core.checksum
System role: Destination document store adapter
"""

import uuid
from dataclasses import dataclass
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from csv_migrator.boundary.db.base import utcnow
from csv_migrator.boundary.db.CRUD.base_crud import BaseCRUD
from csv_migrator.boundary.db.models.record_model import RecordModel
from csv_migrator.core.checksum import calculate_row_key

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class BulkInsertResult:
    """Outcome of an unordered bulk insert."""

    attempted: int
    inserted: int

    @property
    def duplicates(self) -> int:
        return self.attempted - self.inserted

    @property
    def all_duplicates(self) -> bool:
        """Every attempted row already existed (a replayed chunk)."""
        return self.attempted > 0 and self.inserted == 0


class RecordCRUD(BaseCRUD[RecordModel]):
    """CRUD operations for RecordModel."""

    def __init__(self) -> None:
        """Initialize RecordCRUD with RecordModel."""
        super().__init__(RecordModel)

    async def insert_unordered(
        self,
        session: AsyncSession,
        job_id: UUID,
        chunk_index: int,
        records: Sequence[dict[str, Any]],
        *,
        source_checksum: str,
        offsets: Sequence[int] | None = None,
        batch_size: int = 500,
    ) -> BulkInsertResult:
        """
        Insert records, skipping those already present.

        Args:
            session: Async database session (caller commits)
            job_id: Job the records belong to
            chunk_index: Chunk the records came from
            records: Transformed rows
            source_checksum: Content checksum of the source file
            offsets: Position of each record inside its chunk (defaults to
                0..n-1; pass the original positions when rows were filtered)
            batch_size: Rows per INSERT statement

        Returns:
            BulkInsertResult: attempted and inserted counts

        Raises:
            NotImplementedError: Unsupported database dialect
            SQLAlchemyError: Any failure other than a duplicate key
        """
        dialect = session.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise NotImplementedError(f"Unordered insert not supported for dialect {dialect}")

        if offsets is None:
            offsets = range(len(records))
        elif len(offsets) != len(records):
            raise ValueError("offsets and records must have the same length")

        inserted = 0
        now = utcnow()
        for start in range(0, len(records), batch_size):
            rows = [
                {
                    "id": uuid.uuid4(),
                    "job_id": job_id,
                    "chunk_index": chunk_index,
                    "row_offset": offset,
                    "record_key": calculate_row_key(source_checksum, chunk_index, offset),
                    "data": record,
                    "created_at": now,
                }
                for offset, record in zip(offsets[start:start + batch_size], records[start:start + batch_size])
            ]
            stmt = insert(RecordModel).values(rows).on_conflict_do_nothing(
                index_elements=[RecordModel.record_key]
            )
            result = await session.execute(stmt)
            inserted += max(result.rowcount, 0)

        return BulkInsertResult(attempted=len(records), inserted=inserted)

    async def count_for_job(self, session: AsyncSession, job_id: UUID) -> int:
        """Number of records stored for a job."""
        stmt = select(func.count()).select_from(RecordModel).where(RecordModel.job_id == job_id)
        return (await session.execute(stmt)).scalar_one()


record_crud = RecordCRUD()
