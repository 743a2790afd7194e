"""Chunked batch processing of migration jobs."""

from csv_migrator.application.processing.chunk_processor import (
    ChunkedBatchProcessor,
    ProcessingResult,
)

__all__ = ["ChunkedBatchProcessor", "ProcessingResult"]
