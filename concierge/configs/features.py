"""
Feature flag settings.

Three switches control how the concierge reaches the outside world:

    KESTRA_ENABLED                  Route workflows through Kestra (strict: no
                                    silent fallback when enabled but unhealthy).
                                    False means direct API calls.
    NEXT_PUBLIC_LIVE_CALL_ENABLED   true simulates calls with Gemini, false places
                                    real Vapi calls.
    NEXT_PUBLIC_ADMIN_TEST_NUMBER   Comma-separated test phones; real calls are
                                    redirected here instead of to providers.

Dependencies: pydantic, pydantic_settings
System role: Execution-mode configuration for calling, research and booking
"""

from pydantic import AliasChoices, Field
from pydantic_settings import SettingsConfigDict

from concierge.configs.base import ENV_FILES, BaseSettings
from concierge.core.phone import normalize_phone_to_e164


class FeatureSettings(BaseSettings):
    """Execution-mode feature flags."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    kestra_enabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("KESTRA_ENABLED", "kestra_enabled"),
        description="Use Kestra orchestration instead of direct API calls",
    )
    call_simulation_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "NEXT_PUBLIC_LIVE_CALL_ENABLED",
            "LIVE_CALL_ENABLED",
            "call_simulation_enabled",
        ),
        description="true: simulate provider calls; false: perform real calls",
    )
    admin_test_number: str = Field(
        default="",
        validation_alias=AliasChoices(
            "NEXT_PUBLIC_ADMIN_TEST_NUMBER",
            "ADMIN_TEST_NUMBER",
            "admin_test_number",
        ),
        description="Comma-separated phone numbers that receive live test calls",
    )

    @property
    def admin_test_phones(self) -> list[str]:
        """
        Parsed admin test phones in E.164 form.

        Returns:
            list[str]: Normalized numbers; unparseable entries are dropped
        """
        phones = []
        for raw in self.admin_test_number.split(","):
            normalized = normalize_phone_to_e164(raw.strip())
            if normalized:
                phones.append(normalized)
        return phones
