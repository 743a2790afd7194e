"""
Base configuration settings.

Shared ``.env`` loading rules for every config module. Each section reads
its variables under its own prefix (``DATABASE_URL``, ``QUEUE_LANE`` ...);
the top-level settings read unprefixed variables.

Dependencies: pydantic_settings
System role: Foundation for all configuration classes
"""

from pydantic import Field
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict


def settings_config(env_prefix: str = "") -> SettingsConfigDict:
    """Build the model config for a settings section reading ``env_prefix`` variables."""
    return SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix=env_prefix,
        case_sensitive=False,
        extra="ignore",
    )


class BaseSettings(PydanticBaseSettings):
    """Root settings class; sections override ``model_config`` with their prefix."""

    model_config = settings_config()

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
