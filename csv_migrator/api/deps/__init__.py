"""API-specific dependencies."""

from .dependencies import (
    get_broadcaster,
    get_db,
    get_field_filter_provider,
    get_ingestion_service,
    get_job_queue,
    get_job_service,
    get_runtime,
    get_settings_dependency,
)

__all__ = [
    "get_broadcaster",
    "get_db",
    "get_field_filter_provider",
    "get_ingestion_service",
    "get_job_queue",
    "get_job_service",
    "get_runtime",
    "get_settings_dependency",
]
