"""API routers."""

from .bookings import router as bookings_router
from .gemini import router as gemini_router
from .health import router as health_router
from .notifications import router as notifications_router
from .providers import router as providers_router
from .service_requests import router as service_requests_router
from .twilio_webhook import router as twilio_router
from .users import router as users_router
from .vapi_webhook import router as vapi_router
from .workflows import router as workflows_router

__all__ = [
    "bookings_router",
    "gemini_router",
    "health_router",
    "notifications_router",
    "providers_router",
    "service_requests_router",
    "twilio_router",
    "users_router",
    "vapi_router",
    "workflows_router",
]
