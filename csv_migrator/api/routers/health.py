"""
Health check API endpoints.

Routes: GET /health, GET /health/db

Dependencies: csv_migrator.boundary.db
System role: Health check HTTP API
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from csv_migrator.api.deps import get_runtime
from csv_migrator.application.runtime import MigrationRuntime
from csv_migrator.boundary.db.connection import ping

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    message: str


router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check."""
    return HealthResponse(status="healthy", message="Server Healthy")


@router.get("/db", response_model=HealthResponse)
async def health_check_db(runtime: MigrationRuntime = Depends(get_runtime)) -> HealthResponse:
    """
    Database health check.

    Raises:
        HTTPException(503): Database unreachable
    """
    try:
        await ping(runtime.engine)
    except SQLAlchemyError as e:
        logger.error(f"{__name__}:health_check_db - {type(e).__name__}: {e}")
        raise HTTPException(status_code=503, detail="Database connection failed")
    return HealthResponse(status="healthy", message="Database connection OK")
