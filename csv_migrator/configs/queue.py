"""
Job queue configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Dispatcher polling and retry budget configuration
"""

from pydantic import Field

from csv_migrator.configs.base import BaseSettings, settings_config


class QueueSettings(BaseSettings):
    """Polling dispatcher configuration."""

    model_config = settings_config("QUEUE_")

    lane: str = Field(default="csv-migration", description="Queue lane name")
    poll_interval: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait between dispatch attempts",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Retry budget copied onto each newly created job",
    )
