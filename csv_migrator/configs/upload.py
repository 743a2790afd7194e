"""
Upload configuration settings.

Dependencies: pydantic, pydantic_settings
System role: Storage location for uploaded CSV files
"""

from pydantic import Field

from csv_migrator.configs.base import BaseSettings, settings_config


class UploadSettings(BaseSettings):
    """Settings for the upload endpoint."""

    model_config = settings_config("UPLOAD_")

    directory: str = Field(default="./uploads", description="Directory uploaded files are stored in")
