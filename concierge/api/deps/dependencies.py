"""
Dependency injection container.

Factory functions for FastAPI dependencies. Outbound clients are built once
and cached; services that need a database session are built per request.

Dependencies: concierge.configs, concierge.application, concierge.boundary, concierge.core
System role: DI container for service injection
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.application.services import (
    BookingService,
    NotificationService,
    ServiceRequestService,
    SmsReplyService,
    UserCallService,
    UserService,
    persist_call_result,
)
from concierge.boundary.db import get_async_db
from concierge.boundary.google import GeminiClient, PlacesClient
from concierge.boundary.kestra import KestraClient
from concierge.boundary.twilio import TwilioClient
from concierge.boundary.vapi import DirectVapiClient
from concierge.configs import Settings, get_settings
from concierge.core.calling.call_mode import CallModeResolver
from concierge.core.calling.provider_calling import ProviderCallingService
from concierge.core.calling.simulated_call import SimulatedCallService
from concierge.core.recommendation.recommendation_service import RecommendationService
from concierge.core.research.direct_research import DirectResearchClient
from concierge.core.research.enrichment import ProviderEnrichmentService
from concierge.core.research.gemini_workflow import GeminiWorkflowService
from concierge.core.research.research_service import ResearchService


class ServiceCache:
    """Container for cached client and stateless service instances."""

    def __init__(self):
        self._gemini = None
        self._places = None
        self._kestra = None
        self._vapi = None
        self._twilio = None
        self._simulator = None
        self._calling_service = None
        self._research_service = None
        self._recommendation_service = None
        self._gemini_workflow = None

    @property
    def settings(self) -> Settings:
        return get_settings()

    @property
    def gemini(self) -> GeminiClient:
        """Get cached Gemini client."""
        if self._gemini is None:
            self._gemini = GeminiClient(self.settings.gemini)
        return self._gemini

    @property
    def places(self) -> PlacesClient:
        if self._places is None:
            self._places = PlacesClient(self.settings.places)
        return self._places

    @property
    def kestra(self) -> KestraClient:
        if self._kestra is None:
            self._kestra = KestraClient(self.settings.kestra)
        return self._kestra

    @property
    def vapi(self) -> DirectVapiClient:
        """Get cached Vapi client (polls this API's webhook cache)."""
        if self._vapi is None:
            self._vapi = DirectVapiClient(self.settings.vapi, backend_url=self.settings.backend_url)
        return self._vapi

    @property
    def twilio(self) -> TwilioClient:
        if self._twilio is None:
            self._twilio = TwilioClient(self.settings.twilio)
        return self._twilio

    @property
    def simulator(self) -> SimulatedCallService:
        if self._simulator is None:
            self._simulator = SimulatedCallService(self.gemini)
        return self._simulator

    @property
    def calling_service(self) -> ProviderCallingService:
        """Get cached provider calling service; results persist in their own sessions."""
        if self._calling_service is None:
            self._calling_service = ProviderCallingService(
                features=self.settings.features,
                kestra=self.kestra,
                vapi=self.vapi,
                simulator=self.simulator,
                save_result=persist_call_result,
            )
        return self._calling_service

    @property
    def research_service(self) -> ResearchService:
        if self._research_service is None:
            self._research_service = ResearchService(
                features=self.settings.features,
                kestra=self.kestra,
                direct=DirectResearchClient(self.gemini, self.places),
                enrichment=ProviderEnrichmentService(self.places),
            )
        return self._research_service

    @property
    def recommendation_service(self) -> RecommendationService:
        if self._recommendation_service is None:
            self._recommendation_service = RecommendationService(self.gemini)
        return self._recommendation_service

    @property
    def gemini_workflow(self) -> GeminiWorkflowService:
        if self._gemini_workflow is None:
            self._gemini_workflow = GeminiWorkflowService(self.gemini)
        return self._gemini_workflow

    def clear(self) -> None:
        """Clear all cached instances."""
        self.__init__()


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


@lru_cache
def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


def get_gemini_client() -> GeminiClient:
    return get_service_cache().gemini


def get_kestra_client() -> KestraClient:
    return get_service_cache().kestra


def get_vapi_client() -> DirectVapiClient:
    return get_service_cache().vapi


def get_twilio_client() -> TwilioClient:
    return get_service_cache().twilio


def get_simulated_call_service() -> SimulatedCallService:
    return get_service_cache().simulator


def get_calling_service() -> ProviderCallingService:
    return get_service_cache().calling_service


def get_research_service() -> ResearchService:
    return get_service_cache().research_service


def get_recommendation_service() -> RecommendationService:
    return get_service_cache().recommendation_service


def get_gemini_workflow() -> GeminiWorkflowService:
    return get_service_cache().gemini_workflow


def get_call_mode() -> CallModeResolver:
    return CallModeResolver(get_settings().features)


def get_user_service(db: AsyncSession = Depends(get_async_db)) -> UserService:
    """
    Get user service instance.

    Args:
        db: Async database session (injected via Depends)

    Returns:
        UserService: User service instance
    """
    return UserService(db=db)


def get_service_request_service(
    db: AsyncSession = Depends(get_async_db),
) -> ServiceRequestService:
    """
    Get service request service instance.

    Args:
        db: Async database session (injected via Depends)

    Returns:
        ServiceRequestService: Service request service instance
    """
    return ServiceRequestService(db=db)


def get_booking_service(db: AsyncSession = Depends(get_async_db)) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Async database session (injected via Depends)

    Returns:
        BookingService: Booking service wired to Vapi, Twilio and Kestra
    """
    cache = get_service_cache()
    return BookingService(
        db=db,
        features=cache.settings.features,
        vapi=cache.vapi,
        twilio=cache.twilio,
        kestra=cache.kestra,
    )


def get_notification_service(db: AsyncSession = Depends(get_async_db)) -> NotificationService:
    """
    Get notification service instance.

    Args:
        db: Async database session (injected via Depends)

    Returns:
        NotificationService: Notification service with phone and SMS channels
    """
    cache = get_service_cache()
    return NotificationService(
        db=db,
        features=cache.settings.features,
        user_calls=UserCallService(cache.vapi),
        twilio=cache.twilio,
        kestra=cache.kestra,
        frontend_url=cache.settings.frontend_url,
    )


def get_sms_reply_service(db: AsyncSession = Depends(get_async_db)) -> SmsReplyService:
    cache = get_service_cache()
    return SmsReplyService(db=db, twilio=cache.twilio, call_mode=get_call_mode())
