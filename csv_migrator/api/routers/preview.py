"""
CSV preview endpoint.

Routes: POST /preview

Reads the header and the first rows of an uploaded CSV so a client can check
the columns before queueing it. Nothing is enqueued and the temporary copy is
removed once read.

Dependencies: fastapi, python-multipart, csv_migrator.core.csv_reader
System role: HTTP pre-upload inspection
"""

import asyncio
import csv
import logging
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from csv_migrator.api.deps import get_settings_dependency
from csv_migrator.api.routers.uploads import _store_upload
from csv_migrator.configs import Settings
from csv_migrator.core.csv_reader import preview_rows
from csv_migrator.models.job import PreviewResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/preview", tags=["preview"])


@router.post("", response_model=PreviewResponse)
async def preview_csv(
    csv_file: UploadFile = File(..., alias="csvFile"),
    limit: int = Query(10, ge=1, le=100),
    settings: Settings = Depends(get_settings_dependency),
) -> PreviewResponse:
    """
    Preview an uploaded CSV without queueing it.

    Args:
        csv_file: Multipart file field ``csvFile``
        limit: Maximum rows to return
        settings: Injected settings (upload directory)

    Returns:
        PreviewResponse: Header columns and leading rows

    Raises:
        HTTPException(400): Missing file, not a .csv file or unreadable CSV
        HTTPException(500): File could not be stored
    """
    filename = Path(csv_file.filename or "").name
    if not filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if Path(filename).suffix.lower() != ".csv":
        raise HTTPException(status_code=400, detail="Only CSV files are allowed")

    target = Path(settings.upload.directory) / f"preview_{uuid.uuid4().hex}_{filename}"
    try:
        try:
            await asyncio.to_thread(_store_upload, csv_file.file, target)
        except OSError as e:
            logger.exception(f"{__name__}:preview_csv - Could not store {filename}")
            raise HTTPException(status_code=500, detail="Failed to store uploaded file") from e
        finally:
            await csv_file.close()

        try:
            headers, rows = await asyncio.to_thread(preview_rows, target, limit)
        except (csv.Error, UnicodeDecodeError) as e:
            logger.warning(f"{__name__}:preview_csv - Unreadable CSV {filename}: {e}")
            raise HTTPException(status_code=400, detail="File is not a readable CSV") from e
    finally:
        target.unlink(missing_ok=True)

    logger.info(f"{__name__}:preview_csv - Previewed {len(rows)} rows of {filename}")
    return PreviewResponse(filename=filename, headers=headers, rows=rows, preview_count=len(rows))
