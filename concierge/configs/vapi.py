"""
Vapi voice-AI configuration.

Dependencies: pydantic, pydantic_settings
System role: Credentials and endpoints for outbound AI phone calls
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from concierge.configs.base import ENV_FILES, BaseSettings


class VapiSettings(BaseSettings):
    """Vapi API configuration."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        env_prefix="VAPI_",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = Field(default=None, description="Vapi private API key")
    phone_number_id: str | None = Field(
        default=None,
        description="Vapi phone number ID used as caller ID",
    )
    webhook_url: str | None = Field(
        default=None,
        description="Public URL Vapi posts end-of-call reports to",
    )
    base_url: str = Field(default="https://api.vapi.ai", description="Vapi REST base URL")
    request_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    @property
    def is_configured(self) -> bool:
        """True when both the API key and phone number ID are set."""
        return bool(self.api_key and self.phone_number_id)
