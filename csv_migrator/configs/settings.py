"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI and the worker.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from csv_migrator.configs.base import BaseSettings
from csv_migrator.configs.database import DatabaseSettings
from csv_migrator.configs.field_filter import FieldFilterSettings
from csv_migrator.configs.processing import ProcessingSettings
from csv_migrator.configs.progress import ProgressSettings
from csv_migrator.configs.queue import QueueSettings
from csv_migrator.configs.scheduler import SchedulerSettings
from csv_migrator.configs.upload import UploadSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    run_worker: bool = Field(
        default=True,
        description="Run the polling worker inside the API process",
    )
    api_host: str = Field(default="0.0.0.0", description="Interface the API server binds")
    api_port: int = Field(default=8000, ge=1, le=65535, description="Port the API server listens on")

    # Aggregated settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    progress: ProgressSettings = Field(default_factory=ProgressSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    field_filter: FieldFilterSettings = Field(default_factory=FieldFilterSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from csv_migrator.configs import get_settings
        settings = get_settings()
    """
    return Settings()
