"""
Twilio SMS configuration.

Dependencies: pydantic, pydantic_settings
System role: Credentials for outbound SMS and inbound reply webhooks
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from concierge.configs.base import ENV_FILES, BaseSettings


class TwilioSettings(BaseSettings):
    """Twilio Messaging configuration."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        env_prefix="TWILIO_",
        case_sensitive=False,
        extra="ignore",
    )

    account_sid: str | None = Field(default=None, description="Account SID (starts with AC)")
    auth_token: str | None = Field(default=None, description="Auth token")
    phone_number: str | None = Field(default=None, description="Sending phone number")
    base_url: str = Field(default="https://api.twilio.com", description="Twilio REST base URL")

    @property
    def is_configured(self) -> bool:
        """True when credentials and sender are set and the SID looks valid."""
        return bool(
            self.account_sid
            and self.account_sid.startswith("AC")
            and self.auth_token
            and self.phone_number
        )
