"""
Ingestion service.

Entry point for producers (HTTP upload, scheduled directory scan): fingerprints
a file, rejects content that already has a job and enqueues the rest. The
unique checksum column backs the pre-check, so two producers racing on the
same content still end with one job.

Dependencies: csv_migrator.core.checksum, csv_migrator.application.services.job_queue
System role: Duplicate-file gate in front of the job queue
"""

import logging
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from csv_migrator.application.services.job_queue import JobQueue
from csv_migrator.boundary.db.CRUD.job_crud import job_crud
from csv_migrator.boundary.db.models.job_model import JobModel
from csv_migrator.core.checksum import calculate_file_checksum_async
from csv_migrator.core.exceptions import DuplicateFileError

logger = logging.getLogger(__name__)


class IngestionService:
    """Checksum dedup and enqueue for incoming CSV files."""

    def __init__(
        self,
        queue: JobQueue,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self.queue = queue
        self._session_factory = session_factory

    async def find_duplicate(self, checksum: str, session: AsyncSession | None = None) -> JobModel | None:
        """Job that already owns ``checksum``, if any."""
        if session is not None:
            return await job_crud.get_by_checksum(session, checksum)
        async with self._session_factory() as own_session:
            return await job_crud.get_by_checksum(own_session, checksum)

    async def submit_file(
        self,
        file_path: str | Path,
        filename: str | None = None,
        checksum: str | None = None,
        session: AsyncSession | None = None,
        **meta: Any,
    ) -> JobModel:
        """
        Enqueue a CSV file unless identical content was seen before.

        Args:
            file_path: Where the file is stored
            filename: Original filename (defaults to the path's name)
            checksum: Precomputed content checksum
            session: Join an open transaction; the caller commits
            **meta: Extra UPLOAD audit metadata

        Returns:
            JobModel: The new PENDING job

        Raises:
            DuplicateFileError: A job with the same content already exists
            OSError: The file cannot be read
        """
        path = Path(file_path)
        filename = filename or path.name
        if checksum is None:
            checksum = await calculate_file_checksum_async(path)

        existing = await self.find_duplicate(checksum, session)
        if existing is not None:
            logger.info(
                f"{__name__}:submit_file - Duplicate file rejected: {filename}",
                extra={"checksum": checksum, "existing_job_id": str(existing.id)},
            )
            raise DuplicateFileError(checksum, str(existing.id))

        return await self.queue.add(filename, str(path), checksum, session=session, **meta)
