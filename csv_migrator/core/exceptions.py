"""
Exception hierarchy for the CSV migrator.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class MigrationError(Exception):
    """Base exception for all CSV migrator errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class DuplicateFileError(MigrationError):
    """Raised when a file with identical content has already been submitted."""

    def __init__(self, checksum: str, existing_job_id: str | None = None) -> None:
        """
        Initialize duplicate file error.

        Args:
            checksum: Content checksum of the rejected file
            existing_job_id: Job that already owns this checksum, when known
        """
        self.checksum = checksum
        self.existing_job_id = existing_job_id
        details: dict[str, Any] = {"checksum": checksum}
        if existing_job_id:
            details["existing_job_id"] = existing_job_id
        super().__init__("File already uploaded", details)


class JobNotFoundError(MigrationError):
    """Raised when a job cannot be found."""

    def __init__(self, job_id: Any) -> None:
        self.job_id = str(job_id)
        super().__init__(f"Job not found: {job_id}", {"job_id": str(job_id)})


class InvalidJobStateError(MigrationError):
    """Raised when an administrative transition is requested from the wrong state."""

    def __init__(self, job_id: Any, status: str, expected: list[str]) -> None:
        """
        Initialize invalid state error.

        Args:
            job_id: Job the transition was requested for
            status: Current job status
            expected: Statuses the transition accepts
        """
        self.job_id = str(job_id)
        self.status = status
        self.expected = expected
        super().__init__(
            f"Job {job_id} is {status}, expected one of {', '.join(expected)}",
            {"job_id": str(job_id), "status": status},
        )


class SourceFileMissingError(MigrationError):
    """Raised when a job's source file no longer exists at claim time. Fatal."""

    def __init__(self, job_id: Any, file_path: str) -> None:
        self.job_id = str(job_id)
        self.file_path = file_path
        super().__init__(
            "File does not exist",
            {"job_id": str(job_id), "file_path": file_path},
        )


class ChunkInsertError(MigrationError):
    """Raised when a chunk insert fails for a reason other than duplicate keys."""

    def __init__(self, job_id: Any, chunk_index: int, reason: str) -> None:
        """
        Initialize chunk insert error.

        Args:
            job_id: Job the chunk belongs to
            chunk_index: 0-based chunk index
            reason: Underlying error message
        """
        self.job_id = str(job_id)
        self.chunk_index = chunk_index
        super().__init__(
            f"Chunk {chunk_index} failed: {reason}",
            {"job_id": str(job_id), "chunk_index": chunk_index},
        )


class RecordValidationError(MigrationError):
    """Raised when a record misses required fields and validation is configured to fail hard."""

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = missing_fields
        super().__init__(f"Missing required fields: {', '.join(missing_fields)}")


class WaveTimeoutError(MigrationError):
    """Raised when a chunk wave exceeds its configured deadline."""

    def __init__(self, job_id: Any, wave_index: int, timeout: float) -> None:
        self.job_id = str(job_id)
        self.wave_index = wave_index
        self.timeout = timeout
        super().__init__(
            f"Wave {wave_index} did not finish within {timeout}s",
            {"job_id": str(job_id), "wave_index": wave_index},
        )


class FieldFilterConfigError(MigrationError):
    """Raised when the field filter policy file cannot be parsed or validated."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Invalid field filter config at {path}: {reason}", {"path": path})


def is_fatal(exc: BaseException) -> bool:
    """
    Whether a processing failure must bypass the retry budget.

    Args:
        exc: Exception raised while processing a job

    Returns:
        bool: True for failures that no automatic retry can fix
    """
    return isinstance(exc, SourceFileMissingError)
