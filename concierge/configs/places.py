"""
Google Places API configuration.

Dependencies: pydantic, pydantic_settings
System role: Credentials for provider discovery and enrichment
"""

from pydantic import AliasChoices, Field
from pydantic_settings import SettingsConfigDict

from concierge.configs.base import ENV_FILES, BaseSettings


class PlacesSettings(BaseSettings):
    """Google Places (New) API configuration."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_PLACES_API_KEY", "api_key"),
        description="Places API key",
    )
    base_url: str = Field(
        default="https://places.googleapis.com/v1",
        validation_alias=AliasChoices("GOOGLE_PLACES_BASE_URL", "base_url"),
        description="Places API base URL",
    )

    @property
    def is_configured(self) -> bool:
        """True when an API key is available."""
        return bool(self.api_key)
