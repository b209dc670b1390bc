"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from concierge.configs.base import BaseSettings
from concierge.configs.database import DatabaseSettings
from concierge.configs.features import FeatureSettings
from concierge.configs.gemini import GeminiSettings
from concierge.configs.kestra import KestraSettings
from concierge.configs.places import PlacesSettings
from concierge.configs.twilio import TwilioSettings
from concierge.configs.vapi import VapiSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    backend_url: str = Field(
        default="http://localhost:8000",
        description="Public URL of this API, used for webhook polling",
    )
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Web app URL, used for links in SMS messages",
    )

    # Aggregated settings
    database: DatabaseSettings = DatabaseSettings()
    features: FeatureSettings = FeatureSettings()
    vapi: VapiSettings = VapiSettings()
    kestra: KestraSettings = KestraSettings()
    gemini: GeminiSettings = GeminiSettings()
    places: PlacesSettings = PlacesSettings()
    twilio: TwilioSettings = TwilioSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from concierge.configs import get_settings
        settings = get_settings()
    """
    return Settings()
