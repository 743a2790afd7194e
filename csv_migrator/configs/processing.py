"""
Chunk processing configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Chunked batch processor configuration
"""

from pydantic import Field

from csv_migrator.configs.base import BaseSettings, settings_config


class ProcessingSettings(BaseSettings):
    """Settings for the chunked batch processor."""

    model_config = settings_config("PROCESSING_")

    chunk_size: int = Field(
        default=1000,
        ge=1,
        description="Rows per chunk (unit of commit and resumption)",
    )
    max_concurrency: int = Field(
        default=2,
        ge=1,
        description="Chunks processed concurrently within one wave",
    )
    insert_batch_size: int = Field(
        default=500,
        ge=1,
        description="Rows per INSERT statement inside a chunk insert",
    )
    wave_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Optional deadline in seconds for one wave; unset means no deadline",
    )
