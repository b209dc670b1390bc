"""
Gemini LLM configuration.

Dependencies: pydantic, pydantic_settings
System role: Model selection and credentials for Google Gemini
"""

from pydantic import AliasChoices, Field
from pydantic_settings import SettingsConfigDict

from concierge.configs.base import ENV_FILES, BaseSettings


class GeminiSettings(BaseSettings):
    """Google Gemini configuration."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        env_prefix="GEMINI_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY", "api_key"),
        description="Gemini API key",
    )
    model: str = Field(default="gemini-2.5-flash", description="Default Gemini model")
    temperature: float = Field(default=0.7, description="Default sampling temperature")

    @property
    def is_configured(self) -> bool:
        """True when an API key is available."""
        return bool(self.api_key)
