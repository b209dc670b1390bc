"""
Research service.

Routes provider research to Kestra or the direct Gemini/Places client,
enriches direct results with Place Details and normalizes phone numbers
to E.164 so the providers can be called.

Dependencies: concierge.boundary.kestra, concierge.core.research.*
System role: Entry point for provider research
"""

import logging
from typing import Any

from concierge.boundary.kestra import KestraClient
from concierge.configs.features import FeatureSettings
from concierge.core.exceptions import OrchestrationUnavailableError
from concierge.core.research.direct_research import DirectResearchClient, normalize_phones
from concierge.core.research.enrichment import ProviderEnrichmentService
from concierge.models.research import EnrichmentOptions, ResearchRequest, ResearchResult

logger = logging.getLogger(__name__)


class ResearchService:
    """
    Provider research orchestrator.

    Args:
        features: Feature flags (Kestra routing)
        kestra: Kestra client
        direct: Direct research client
        enrichment: Place Details enrichment
    """

    def __init__(
        self,
        features: FeatureSettings,
        kestra: KestraClient,
        direct: DirectResearchClient,
        enrichment: ProviderEnrichmentService,
    ) -> None:
        self.features = features
        self.kestra = kestra
        self.direct = direct
        self.enrichment = enrichment

    async def should_use_kestra(self) -> bool:
        """
        Raises:
            OrchestrationUnavailableError: Kestra enabled but unhealthy
        """
        if not self.features.kestra_enabled:
            return False
        if not await self.kestra.health_check():
            logger.error(f"{__name__}:should_use_kestra - Kestra unhealthy, not falling back")
            raise OrchestrationUnavailableError(self.kestra.url)
        return True

    async def search(self, request: ResearchRequest) -> ResearchResult:
        """
        Research providers for a service request.

        Args:
            request: Service, location and filters

        Returns:
            ResearchResult: Providers (enriched when found directly)

        Raises:
            OrchestrationUnavailableError: Kestra enabled but unhealthy
        """
        logger.info(
            f"{__name__}:search - START service={request.service!r} location={request.location!r}",
            extra={"service_request_id": request.service_request_id},
        )

        if await self.should_use_kestra():
            result = await self.kestra.trigger_research_flow(request)
        else:
            result = await self.direct.search(request)
            if result.status != "error" and result.providers and request.enrich:
                result = await self._enrich(result, request)

        if result.status != "error":
            result = result.model_copy(update={"providers": normalize_phones(result.providers)})

        logger.info(
            f"{__name__}:search - END status={result.status} method={result.method} "
            f"providers={len(result.providers)}"
        )
        return result

    async def _enrich(self, result: ResearchResult, request: ResearchRequest) -> ResearchResult:
        try:
            enriched = await self.enrichment.enrich(
                result.providers,
                EnrichmentOptions(
                    coordinates=request.coordinates,
                    require_phone=request.require_phone,
                    min_enriched_results=request.min_enriched_results,
                    max_to_enrich=request.max_results,
                ),
            )
        except Exception as e:
            logger.error(
                f"{__name__}:_enrich - Enrichment failed, returning unenriched results - "
                f"{type(e).__name__}: {e}"
            )
            return result

        return result.model_copy(
            update={
                "providers": enriched.providers,
                "filtered_count": len(enriched.providers),
                "reasoning": (
                    f"{result.reasoning or ''} | Enriched: {enriched.stats.enriched_count}, "
                    f"with phone: {enriched.stats.with_phone_count}"
                ),
            }
        )

    async def get_system_status(self) -> dict[str, Any]:
        kestra_enabled = self.features.kestra_enabled
        kestra_healthy = await self.kestra.health_check() if kestra_enabled else False
        return {
            "kestraEnabled": kestra_enabled,
            "kestraUrl": self.kestra.url if kestra_enabled else None,
            "kestraHealthy": kestra_healthy,
            "geminiConfigured": self.direct.gemini.is_configured(),
            "placesConfigured": self.direct.places.is_configured(),
            "activeResearchMethod": (
                "kestra" if kestra_enabled and kestra_healthy else "direct_gemini"
            ),
        }
