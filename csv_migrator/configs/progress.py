"""
Progress broadcasting configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Progress fan-out configuration
"""

from pydantic import Field

from csv_migrator.configs.base import BaseSettings, settings_config


class ProgressSettings(BaseSettings):
    """Settings for the progress broadcaster."""

    model_config = settings_config("PROGRESS_")

    poll_interval: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between job store progress re-derivations",
    )
    subscriber_queue_size: int = Field(
        default=100,
        ge=1,
        description="Pending events buffered per subscriber before it is dropped",
    )
