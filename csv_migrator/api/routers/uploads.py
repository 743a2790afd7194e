"""
Upload API endpoints.

Routes: POST /uploads

Stores an uploaded CSV under the upload directory and hands it to the
ingestion service. Identical content uploaded before is rejected with 409
and the stored copy is removed.

Dependencies: fastapi, python-multipart, csv_migrator.application.services
System role: HTTP job producer
"""

import asyncio
import logging
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from csv_migrator.api.deps import get_ingestion_service, get_settings_dependency
from csv_migrator.application.services.ingestion_service import IngestionService
from csv_migrator.configs import Settings
from csv_migrator.core.exceptions import DuplicateFileError
from csv_migrator.models.job import UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


def _store_upload(source: BinaryIO, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "wb") as fh:
        shutil.copyfileobj(source, fh)


@router.post("", response_model=UploadResponse, status_code=201)
async def upload_csv(
    csv_file: UploadFile = File(..., alias="csvFile"),
    ingestion: IngestionService = Depends(get_ingestion_service),
    settings: Settings = Depends(get_settings_dependency),
) -> UploadResponse:
    """
    Upload a CSV file and queue it for migration.

    Args:
        csv_file: Multipart file field ``csvFile``
        ingestion: Injected IngestionService
        settings: Injected settings (upload directory)

    Returns:
        UploadResponse: Created job id and status

    Raises:
        HTTPException(400): Missing file or not a .csv file
        HTTPException(409): Identical content was already uploaded
        HTTPException(500): File could not be stored or queued
    """
    filename = Path(csv_file.filename or "").name
    if not filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if Path(filename).suffix.lower() != ".csv":
        raise HTTPException(status_code=400, detail="Only CSV files are allowed")

    target = Path(settings.upload.directory) / f"{uuid.uuid4().hex}_{filename}"
    try:
        await asyncio.to_thread(_store_upload, csv_file.file, target)
    except OSError as e:
        logger.exception(f"{__name__}:upload_csv - Could not store {filename}")
        raise HTTPException(status_code=500, detail="Failed to store uploaded file") from e
    finally:
        await csv_file.close()

    try:
        job = await ingestion.submit_file(target, filename=filename)
    except DuplicateFileError as e:
        target.unlink(missing_ok=True)
        raise HTTPException(
            status_code=409,
            detail={
                "message": e.message,
                "checksum": e.checksum,
                "existingJobId": e.existing_job_id,
            },
        )
    except Exception as e:
        target.unlink(missing_ok=True)
        logger.exception(f"{__name__}:upload_csv - Failed to queue {filename}")
        raise HTTPException(status_code=500, detail="Failed to queue uploaded file") from e

    logger.info(
        f"{__name__}:upload_csv - File uploaded: {filename}",
        extra={"job_id": str(job.id)},
    )
    return UploadResponse(
        job_id=str(job.id),
        status=job.status.value,
        message="File queued for migration. Poll /jobs/{jobId} or connect to /progress/ws for status.",
    )
