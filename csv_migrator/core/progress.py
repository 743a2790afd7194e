"""
Progress arithmetic and event construction.

Dependencies: csv_migrator.models.progress
System role: Single definition of the reported percentage
"""

from datetime import datetime, timezone
from typing import Any

from csv_migrator.models.progress import ProgressEvent


def calculate_percentage(processed_rows: int, total_rows: int) -> int:
    """
    Integer completion percentage in [0, 100].

    Half values round up. A job whose total is unknown or zero reports 0.

    Args:
        processed_rows: Rows durably processed
        total_rows: Rows in the file

    Returns:
        int: Percentage complete
    """
    if total_rows <= 0:
        return 0
    value = int(100 * processed_rows / total_rows + 0.5)
    return max(0, min(100, value))


def build_progress_event(
    job_id: Any,
    processed_rows: int,
    total_rows: int,
    status: str,
    message: str | None = None,
    percentage: int | None = None,
) -> ProgressEvent:
    """
    Build a progress event for a job.

    Args:
        job_id: Job identifier
        processed_rows: Rows processed so far
        total_rows: Total rows in the file
        status: Current job status value
        message: Human readable message (defaults to a row count summary)
        percentage: Explicit percentage, computed from the counters when omitted

    Returns:
        ProgressEvent: Event ready to broadcast
    """
    if percentage is None:
        percentage = calculate_percentage(processed_rows, total_rows)
    return ProgressEvent(
        job_id=str(job_id),
        percentage=percentage,
        message=message or f"Processed {processed_rows} of {total_rows} rows",
        status=status,
        timestamp=datetime.now(timezone.utc),
    )
