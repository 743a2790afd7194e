"""
Field filter configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Location and refresh cadence of the field filter policy file
"""

from pydantic import Field

from csv_migrator.configs.base import BaseSettings, settings_config


class FieldFilterSettings(BaseSettings):
    """Where the field filter policy lives and how often it is re-read."""

    model_config = settings_config("FIELD_FILTER_")

    config_path: str = Field(
        default="./config/field-filter.json",
        description="JSON file holding the field filter policy",
    )
    refresh_interval: float = Field(
        default=5.0,
        ge=0,
        description="Seconds between checks for a changed policy file",
    )
