"""
Provider calling orchestrator.

Picks how each provider gets called and persists every outcome:

    simulated    Gemini-generated conversation (live calls disabled, or the
                 providers beyond the admin test phones in test mode)
    kestra       contact_providers flow, when KESTRA_ENABLED=true
    direct_vapi  DirectVapiClient, otherwise

Kestra routing is strict. When the flag is on and the health check fails
the call is refused rather than silently rerouted.

Dependencies: concierge.boundary.kestra, concierge.boundary.vapi,
              concierge.core.calling.*
System role: Entry point for all provider calls (routes and background tasks)
"""

import logging
import time
from typing import Any

from concierge.boundary.kestra import KestraClient
from concierge.boundary.vapi.direct_vapi_client import DirectVapiClient
from concierge.configs.features import FeatureSettings
from concierge.core.calling.call_mode import CallModeResolver
from concierge.core.calling.concurrent_calls import ConcurrentCallService, ResultSaver
from concierge.core.calling.simulated_call import SimulatedCallService
from concierge.core.exceptions import (
    ExternalServiceError,
    NoProvidersError,
    OrchestrationUnavailableError,
)
from concierge.models.calls import CallRequest, CallResult, SimulatedCallRequest, summarize_results

logger = logging.getLogger(__name__)


def as_simulated(request: CallRequest) -> SimulatedCallRequest:
    if isinstance(request, SimulatedCallRequest):
        return request
    return SimulatedCallRequest.model_validate(request.model_dump())


class ProviderCallingService:
    """
    Route provider calls between simulation, Kestra and direct Vapi.

    Args:
        features: Feature flags (Kestra routing, live calls, test phones)
        kestra: Kestra client
        vapi: Direct Vapi client
        simulator: Simulated call generator
        save_result: Persists each finished call
    """

    def __init__(
        self,
        features: FeatureSettings,
        kestra: KestraClient,
        vapi: DirectVapiClient,
        simulator: SimulatedCallService,
        save_result: ResultSaver,
    ) -> None:
        self.features = features
        self.kestra = kestra
        self.vapi = vapi
        self.simulator = simulator
        self.save_result = save_result
        self.call_mode = CallModeResolver(features)

    async def should_use_kestra(self) -> bool:
        """
        Decide between Kestra and direct API calls.

        Raises:
            OrchestrationUnavailableError: Kestra enabled but unhealthy
        """
        if not self.features.kestra_enabled:
            logger.info(f"{__name__}:should_use_kestra - Kestra disabled, using direct API")
            return False

        if not await self.kestra.health_check():
            logger.error(
                f"{__name__}:should_use_kestra - Kestra unhealthy with KESTRA_ENABLED=true, "
                "not falling back"
            )
            raise OrchestrationUnavailableError(self.kestra.url)

        logger.debug(f"{__name__}:should_use_kestra - Kestra available")
        return True

    async def call_provider(self, request: CallRequest) -> CallResult:
        """
        Place (or simulate) a single provider call and persist the result.

        Args:
            request: Call to make

        Returns:
            CallResult: Outcome of the call

        Raises:
            OrchestrationUnavailableError: Kestra enabled but unhealthy
        """
        live, simulated = self.call_mode.plan_batch([request])
        if simulated:
            result = await self.simulator.simulate_call(as_simulated(simulated[0]))
            await self.save_result(result, request)
            return result

        call = live[0]
        use_kestra = await self.should_use_kestra()
        method = "kestra" if use_kestra else "direct_vapi"
        logger.info(
            f"{__name__}:call_provider - START provider={call.provider_name}",
            extra={"method": method, "phone": call.provider_phone, "service": call.service_needed},
        )

        try:
            if use_kestra:
                result = await self.kestra.trigger_contact_flow(call)
            else:
                result = await self.vapi.initiate_call(call, call.custom_prompt)
            await self.save_result(result, call)
        except Exception as e:
            logger.error(
                f"{__name__}:call_provider - FAILED provider={call.provider_name} - "
                f"{type(e).__name__}: {e}",
                extra={"method": method},
                exc_info=True,
            )
            raise

        logger.info(
            f"{__name__}:call_provider - END provider={call.provider_name} status={result.status}",
            extra={"call_id": result.call_id, "method": result.call_method, "duration": result.duration},
        )
        return result

    async def call_providers_batch(
        self,
        requests: list[CallRequest],
        max_concurrent: int = 5,
    ) -> dict[str, Any]:
        """
        Call a batch of providers with a single routing decision.

        Simulated calls are split off first (all of them in simulated mode,
        the providers beyond the test phones in test mode) and merged back
        into the results.

        Returns:
            dict: {success, results, errors, stats, executionMethod, resultsInDatabase}

        Raises:
            NoProvidersError: Empty batch
            OrchestrationUnavailableError: Kestra enabled but unhealthy
            ExternalServiceError: Every Kestra call failed
        """
        if not requests:
            raise NoProvidersError("No requests provided for batch calling")

        started = time.monotonic()
        live, simulated = self.call_mode.plan_batch(requests)
        logger.info(
            f"{__name__}:call_providers_batch - START providers={len(requests)}",
            extra={
                "call_mode": self.call_mode.mode,
                "live": len(live),
                "simulated": len(simulated),
                "max_concurrent": max_concurrent,
            },
        )

        results: list[CallResult] = []
        errors: list[dict[str, str]] = []
        method = "simulated"

        if live:
            use_kestra = await self.should_use_kestra()
            method = "kestra" if use_kestra else "direct_vapi"
            if use_kestra:
                results.extend(await self._kestra_batch(live))
            else:
                concurrent = ConcurrentCallService(self.vapi, self.save_result)
                batch = await concurrent.call_providers_concurrently(live, max_concurrent)
                results.extend(batch["results"])
                errors.extend(batch["errors"])

        if simulated:
            simulation = await self.simulator.simulate_batch(
                [as_simulated(request) for request in simulated], max_concurrent
            )
            for request, result in zip(simulated, simulation["results"]):
                await self.save_result(result, request)
            results.extend(simulation["results"])

        stats = summarize_results(results, started, time.monotonic())
        logger.info(f"{__name__}:call_providers_batch - END method={method}", extra=stats)
        return {
            "success": len(errors) < len(requests),
            "results": results,
            "errors": errors,
            "stats": stats,
            "executionMethod": method,
            "resultsInDatabase": True,
        }

    async def _kestra_batch(self, requests: list[CallRequest]) -> list[CallResult]:
        # One contact flow at a time; Kestra queues its own executions
        results = []
        for request in requests:
            result = await self.kestra.trigger_contact_flow(request)
            await self.save_result(result, request)
            results.append(result)

        if all(result.status == "error" for result in results):
            first_error = results[0].error or "All provider calls failed"
            logger.error(
                f"{__name__}:_kestra_batch - Every Kestra call failed: {first_error}"
            )
            raise ExternalServiceError(
                f"Kestra batch execution failed: {first_error}", service="kestra"
            )
        return results

    async def get_system_status(self) -> dict[str, Any]:
        """Which calling path is active, and whether its dependencies are up."""
        kestra_enabled = self.features.kestra_enabled
        kestra_healthy = await self.kestra.health_check() if kestra_enabled else False
        vapi_configured = self.vapi.is_configured()

        if self.call_mode.is_simulated:
            active = "simulated"
        elif kestra_enabled and kestra_healthy:
            active = "kestra"
        else:
            active = "direct_vapi"

        return {
            "kestraEnabled": kestra_enabled,
            "kestraUrl": self.kestra.url if kestra_enabled else None,
            "kestraHealthy": kestra_healthy,
            "vapiConfigured": vapi_configured,
            "fallbackAvailable": vapi_configured,
            "activeMethod": active,
            "callMode": self.call_mode.mode,
        }
