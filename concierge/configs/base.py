"""
Shared settings base for the concierge API.

The API runs inside a monorepo next to the web app, so every settings class
reads the root `.env`, the shared `apps/.env` and the API-only
`apps/api/.env`, later files overriding earlier ones. Keys no settings class
declares are ignored.

Dependencies: pydantic_settings
System role: Parent of every concierge settings class
"""

from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict
from pydantic import Field

ENV_FILES = (".env", "apps/.env", "apps/api/.env")


class BaseSettings(PydanticBaseSettings):
    """Environment, debug and log level shared by every settings class."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, staging, production)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
