"""
Scheduled import configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Directory scan trigger configuration
"""

from pydantic import Field

from csv_migrator.configs.base import BaseSettings, settings_config


class SchedulerSettings(BaseSettings):
    """Settings for the scheduled directory import."""

    model_config = settings_config("SCHEDULED_IMPORT_")

    enabled: bool = Field(default=True, description="Enable scheduled imports")
    cron: str = Field(default="0 2 * * *", description="Crontab expression for the scan")
    timezone: str = Field(default="UTC", description="Timezone the crontab is evaluated in")
    directory: str = Field(
        default="./scheduled_imports",
        description="Directory scanned for CSV files",
    )
    processed_dirname: str = Field(
        default="processed",
        description="Archive subdirectory for enqueued files",
    )
