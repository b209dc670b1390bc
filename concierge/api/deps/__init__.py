"""API-specific dependencies."""

# Re-export common dependencies
from .dependencies import (
    get_booking_service,
    get_call_mode,
    get_calling_service,
    get_gemini_client,
    get_gemini_workflow,
    get_kestra_client,
    get_notification_service,
    get_recommendation_service,
    get_research_service,
    get_service_cache,
    get_service_request_service,
    get_settings_dependency,
    get_simulated_call_service,
    get_sms_reply_service,
    get_twilio_client,
    get_user_service,
    get_vapi_client,
)

__all__ = [
    "get_booking_service",
    "get_call_mode",
    "get_calling_service",
    "get_gemini_client",
    "get_gemini_workflow",
    "get_kestra_client",
    "get_notification_service",
    "get_recommendation_service",
    "get_research_service",
    "get_service_cache",
    "get_service_request_service",
    "get_settings_dependency",
    "get_simulated_call_service",
    "get_sms_reply_service",
    "get_twilio_client",
    "get_user_service",
    "get_vapi_client",
]
