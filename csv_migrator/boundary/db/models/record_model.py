"""
Migrated record ORM model.

Destination document store for CSV rows: each row is stored as a JSON
document keyed by its position in the source file, so replaying a chunk is
reported as duplicates while identical rows at different positions are all
kept.

Dependencies: sqlalchemy, csv_migrator.boundary.db.base
System role: Destination store for migrated rows
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from csv_migrator.boundary.db.base import Base, UUIDMixin, utcnow


class RecordModel(Base, UUIDMixin):
    """
    Migrated CSV row.

    Attributes:
        job_id: Job that inserted the row
        chunk_index: Chunk the row came from
        row_offset: Position of the row inside its chunk
        record_key: SHA-256 of source checksum, chunk index and row offset (UNIQUE)
        data: The transformed row
        created_at: Insert timestamp
    """

    __tablename__ = "records"

    job_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    row_offset: Mapped[int] = mapped_column(Integer, nullable=False)
    record_key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
