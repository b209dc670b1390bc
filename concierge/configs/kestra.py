"""
Kestra orchestration configuration.

Dependencies: pydantic, pydantic_settings
System role: Connection settings for the workflow orchestration service
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from concierge.configs.base import ENV_FILES, BaseSettings


class KestraSettings(BaseSettings):
    """Kestra server configuration."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        env_prefix="KESTRA_",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = Field(default="http://localhost:8082", description="Kestra server URL")
    namespace: str = Field(default="ai_concierge", description="Flow namespace")
    api_token: str | None = Field(default=None, description="Optional bearer token")
    health_check_timeout: int = Field(
        default=3000,
        description="Health check timeout in milliseconds",
    )
    poll_interval: float = Field(
        default=5.0,
        description="Seconds between execution status polls",
    )
