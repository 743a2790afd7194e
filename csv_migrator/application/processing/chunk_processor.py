"""
Chunked batch processor.

Migrates one claimed job's CSV into the destination store: counts rows,
splits the file into deterministic fixed-size chunks and processes them in
waves of at most ``max_concurrency`` concurrent chunks. Each chunk commits
its records, its audit entry and the job's progress counters in one
transaction, on its own session. Chunks at or below the job's
``last_processed_chunk`` are skipped, so a re-run resumes where the last
attempt stopped without re-inserting anything.

Dependencies: asyncio, sqlalchemy, csv_migrator.boundary.db, csv_migrator.core
System role: Pipeline stage between the job queue and the destination store
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from csv_migrator.application.progress_broadcaster import ProgressBroadcaster
from csv_migrator.application.services.audit_service import AuditService
from csv_migrator.boundary.db.CRUD.job_crud import job_crud
from csv_migrator.boundary.db.CRUD.record_crud import record_crud
from csv_migrator.boundary.db.models.audit_log_model import AuditAction
from csv_migrator.boundary.db.models.job_model import JobModel, JobStatus
from csv_migrator.core.csv_reader import ChunkReader, Row, chunk_count, count_rows
from csv_migrator.core.exceptions import (
    ChunkInsertError,
    JobNotFoundError,
    SourceFileMissingError,
    WaveTimeoutError,
)
from csv_migrator.core.field_filter import RecordTransformer
from csv_migrator.core.progress import build_progress_event
from csv_migrator.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

TransformerFactory = Callable[[], RecordTransformer | None]


@dataclass
class ProcessingResult:
    """Totals of one processing attempt."""

    total_rows: int = 0
    total_chunks: int = 0
    inserted: int = 0
    duplicates: int = 0
    filtered: int = 0
    resumed_chunks: int = 0

    def as_meta(self) -> dict[str, Any]:
        """Audit metadata for the COMPLETE entry."""
        return {
            "totalRows": self.total_rows,
            "totalChunks": self.total_chunks,
            "insertedCount": self.inserted,
            "duplicateCount": self.duplicates,
            "filteredCount": self.filtered,
            "resumedChunks": self.resumed_chunks,
        }


@dataclass
class _AttemptProgress:
    """
    In-memory counters of the current attempt.

    ``watermark`` only moves over an unbroken run of finished chunks, so a
    later chunk finishing first never marks an earlier one as applied.
    """

    total_rows: int
    watermark: int
    rows: int = 0
    chunks: int = 0
    _done: set[int] = field(default_factory=set)

    def preview(self, index: int, row_count: int) -> tuple[int, int, int]:
        """Counters as they will be once chunk ``index`` is committed."""
        done = self._done | {index}
        watermark = self.watermark
        while watermark + 1 in done:
            watermark += 1
        return min(self.total_rows, self.rows + row_count), self.chunks + 1, watermark

    def record(self, index: int, row_count: int) -> None:
        self._done.add(index)
        self.rows += row_count
        self.chunks += 1
        while self.watermark + 1 in self._done:
            self.watermark += 1

    @property
    def processed_rows(self) -> int:
        return min(self.total_rows, self.rows)


class ChunkedBatchProcessor:
    """
    Wave-based chunk processor.

    Attributes:
        chunk_size: Rows per chunk
        max_concurrency: Chunks per wave
        insert_batch_size: Rows per INSERT statement
        wave_timeout: Optional per-wave deadline in seconds
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        chunk_size: int = 1000,
        max_concurrency: int = 2,
        insert_batch_size: int = 500,
        wave_timeout: float | None = None,
        transformer_factory: TransformerFactory | None = None,
        broadcaster: ProgressBroadcaster | None = None,
    ) -> None:
        if chunk_size < 1 or max_concurrency < 1:
            raise ValueError("chunk_size and max_concurrency must be >= 1")
        self._session_factory = session_factory
        self.chunk_size = chunk_size
        self.max_concurrency = max_concurrency
        self.insert_batch_size = insert_batch_size
        self.wave_timeout = wave_timeout
        self._transformer_factory = transformer_factory
        self._broadcaster = broadcaster

    async def process(self, job: JobModel) -> ProcessingResult:
        """
        Migrate a claimed job's file.

        Args:
            job: RUNNING job returned by the queue

        Returns:
            ProcessingResult: Totals of this attempt

        Raises:
            SourceFileMissingError: The CSV is gone (fatal)
            ChunkInsertError: A chunk failed for a non-duplicate reason
            WaveTimeoutError: A wave exceeded ``wave_timeout``
        """
        file_path = Path(job.file_path)
        if not file_path.is_file():
            raise SourceFileMissingError(job.id, job.file_path)

        total_rows = await asyncio.to_thread(count_rows, file_path)
        total_chunks = chunk_count(total_rows, self.chunk_size)

        async with self._session_factory() as session:
            current = await job_crud.update_by_id(
                session,
                job.id,
                total_rows=total_rows,
                total_chunks=total_chunks,
            )
            if current is None:
                raise JobNotFoundError(job.id)
            await session.commit()

        logger.info(
            f"{__name__}:process - {total_rows} rows in {total_chunks} chunks",
            extra={"job_id": str(job.id), "resume_from": current.last_processed_chunk + 1},
        )

        progress = _AttemptProgress(total_rows=total_rows, watermark=current.last_processed_chunk)
        result = ProcessingResult(total_rows=total_rows, total_chunks=total_chunks)

        reader = ChunkReader(file_path, self.chunk_size)
        try:
            wave_index = 0
            while True:
                wave = await asyncio.to_thread(reader.read_wave, self.max_concurrency)
                if not wave:
                    break
                transform = self._transformer_factory() if self._transformer_factory else None
                await self._run_wave(job.id, wave_index, wave, transform, progress, result, total_chunks)
                wave_index += 1
        finally:
            reader.close()

        async with self._session_factory() as session:
            await job_crud.advance_progress(
                session,
                job.id,
                processed_rows=total_rows,
                processed_chunks=total_chunks,
                last_processed_chunk=total_chunks - 1,
            )
            await session.commit()

        return result

    async def _run_wave(
        self,
        job_id: UUID,
        wave_index: int,
        wave: list[tuple[int, list[Row]]],
        transform: RecordTransformer | None,
        progress: _AttemptProgress,
        result: ProcessingResult,
        total_chunks: int,
    ) -> None:
        """Run one wave to resolution, then persist counters and surface the first failure."""
        gathered = asyncio.gather(
            *(
                self._process_chunk(job_id, index, rows, transform, progress, result, total_chunks)
                for index, rows in wave
            ),
            return_exceptions=True,
        )
        try:
            if self.wave_timeout is None:
                outcomes = await gathered
            else:
                outcomes = await asyncio.wait_for(gathered, timeout=self.wave_timeout)
        except asyncio.TimeoutError:
            await self._persist_progress(job_id, progress)
            raise WaveTimeoutError(job_id, wave_index, self.wave_timeout)

        await self._persist_progress(job_id, progress)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    async def _persist_progress(self, job_id: UUID, progress: _AttemptProgress) -> None:
        async with self._session_factory() as session:
            await job_crud.advance_progress(
                session,
                job_id,
                processed_rows=progress.processed_rows,
                processed_chunks=progress.chunks,
                last_processed_chunk=progress.watermark,
            )
            await session.commit()

    async def _process_chunk(
        self,
        job_id: UUID,
        index: int,
        rows: list[Row],
        transform: RecordTransformer | None,
        progress: _AttemptProgress,
        result: ProcessingResult,
        total_chunks: int,
    ) -> None:
        async with self._session_factory() as session:
            job = await job_crud.get_by_id(session, job_id, fresh=True)
            if job is None:
                raise JobNotFoundError(job_id)

            if index <= job.last_processed_chunk:
                progress.record(index, len(rows))
                result.resumed_chunks += 1
                logger.debug(
                    f"{__name__}:_process_chunk - Chunk already applied, skipping",
                    extra={"job_id": str(job_id), "chunk_index": index},
                )
                self._emit(job_id, progress, f"Chunk {index + 1} of {total_chunks} already applied")
                return

            try:
                # Offsets are positions in the raw chunk, stable across policy changes
                offsets: list[int] = []
                records: list[dict[str, Any]] = []
                for offset, row in enumerate(rows):
                    record = dict(row) if transform is None else transform(row)
                    if record is not None:
                        offsets.append(offset)
                        records.append(record)
                filtered = len(rows) - len(records)

                audit = AuditService(session)
                if not records:
                    inserted = duplicates = 0
                    await audit.record(
                        AuditAction.SKIP,
                        job_id,
                        chunkIndex=index,
                        chunkSize=len(rows),
                        filteredCount=filtered,
                    )
                else:
                    outcome = await record_crud.insert_unordered(
                        session,
                        job_id,
                        index,
                        records,
                        source_checksum=job.checksum,
                        offsets=offsets,
                        batch_size=self.insert_batch_size,
                    )
                    inserted, duplicates = outcome.inserted, outcome.duplicates
                    if outcome.all_duplicates:
                        await audit.record(
                            AuditAction.SKIP,
                            job_id,
                            chunkIndex=index,
                            chunkSize=len(rows),
                            duplicateCount=duplicates,
                            filteredCount=filtered,
                        )
                    else:
                        await audit.record(
                            AuditAction.INSERT,
                            job_id,
                            chunkIndex=index,
                            chunkSize=len(rows),
                            insertedCount=inserted,
                            duplicateCount=duplicates,
                            filteredCount=filtered,
                        )

                processed_rows, processed_chunks, watermark = progress.preview(index, len(rows))
                await job_crud.advance_progress(
                    session,
                    job_id,
                    processed_rows=processed_rows,
                    processed_chunks=processed_chunks,
                    last_processed_chunk=watermark,
                )
                await session.commit()
            except Exception as e:
                await session.rollback()
                await self._record_chunk_failure(job_id, index, len(rows), e)
                raise ChunkInsertError(job_id, index, str(e)) from e

        progress.record(index, len(rows))
        result.inserted += inserted
        result.duplicates += duplicates
        result.filtered += filtered
        logger.debug(
            f"{__name__}:_process_chunk - Chunk committed",
            extra={"job_id": str(job_id), "chunk_index": index, "inserted": inserted},
        )
        self._emit(job_id, progress, f"Processed chunk {index + 1} of {total_chunks}")

    async def _record_chunk_failure(
        self,
        job_id: UUID,
        index: int,
        chunk_size: int,
        error: Exception,
    ) -> None:
        log_exception_with_context(
            logger, f"{__name__}:_process_chunk - Chunk failed", error, job_id=job_id, chunk_index=index
        )
        async with self._session_factory() as session:
            await AuditService(session).record(
                AuditAction.FAILED,
                job_id,
                chunkIndex=index,
                chunkSize=chunk_size,
                error=str(error),
            )
            await session.commit()

    def _emit(self, job_id: UUID, progress: _AttemptProgress, message: str) -> None:
        if self._broadcaster is None:
            return
        self._broadcaster.emit(
            build_progress_event(
                job_id,
                progress.processed_rows,
                progress.total_rows,
                JobStatus.RUNNING.value,
                message=message,
            )
        )
