"""
Field filter configuration API endpoints.

Routes:
- GET /config/field-filter - Active field filter policy
- PUT /config/field-filter - Validate, persist and activate a new policy

Dependencies: fastapi, csv_migrator.core.field_filter
System role: Field filter policy administration HTTP API
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from csv_migrator.api.deps import get_field_filter_provider
from csv_migrator.core.field_filter import FieldFilterConfig, FieldFilterProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/config", tags=["config"])


@router.get("/field-filter")
async def get_field_filter(
    provider: FieldFilterProvider = Depends(get_field_filter_provider),
) -> dict[str, Any]:
    """Active policy, camelCase keys."""
    return provider.snapshot().model_dump(by_alias=True, mode="json")


@router.put("/field-filter")
async def update_field_filter(
    config: FieldFilterConfig,
    provider: FieldFilterProvider = Depends(get_field_filter_provider),
) -> dict[str, Any]:
    """
    Replace the policy. Waves started after this call use it.

    Raises:
        HTTPException(422): Invalid policy (FastAPI validation)
        HTTPException(500): Policy file could not be written
    """
    try:
        saved = provider.save(config)
    except OSError as e:
        logger.exception(f"{__name__}:update_field_filter - Could not save policy")
        raise HTTPException(status_code=500, detail="Failed to save field filter config") from e
    return saved.model_dump(by_alias=True, mode="json")
