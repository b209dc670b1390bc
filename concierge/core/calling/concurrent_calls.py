"""
Concurrent direct Vapi calls.

Calls providers in chunks of `max_concurrent`, saving each result as soon as
its call finishes. A call that never got a Vapi call ID (bad number, API
rejection) is reported under `errors` instead of `results`.

Dependencies: concierge.boundary.vapi.direct_vapi_client
System role: Direct-path batch calling
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from concierge.boundary.vapi.direct_vapi_client import DirectVapiClient
from concierge.models.calls import CallRequest, CallResult, summarize_results

logger = logging.getLogger(__name__)

ResultSaver = Callable[[CallResult, CallRequest], Awaitable[None]]


class ConcurrentCallService:
    """
    Batch caller over DirectVapiClient.

    Args:
        vapi: Direct Vapi client
        save_result: Persists each finished call
        chunk_pause: Seconds between chunks
    """

    def __init__(
        self,
        vapi: DirectVapiClient,
        save_result: ResultSaver,
        chunk_pause: float = 0.5,
    ) -> None:
        self.vapi = vapi
        self.save_result = save_result
        self.chunk_pause = chunk_pause

    async def _call_and_save(self, request: CallRequest) -> CallResult:
        result = await self.vapi.initiate_call(request, request.custom_prompt)
        await self.save_result(result, request)
        return result

    async def call_providers_concurrently(
        self,
        requests: list[CallRequest],
        max_concurrent: int = 5,
    ) -> dict[str, Any]:
        """
        Call every request, max_concurrent at a time.

        Returns:
            dict: {success, results, errors, stats, resultsInDatabase}
        """
        started = time.monotonic()
        results: list[CallResult] = []
        errors: list[dict[str, str]] = []
        total_chunks = (len(requests) + max_concurrent - 1) // max_concurrent

        logger.info(
            f"{__name__}:call_providers_concurrently - START "
            f"providers={len(requests)} max_concurrent={max_concurrent}"
        )

        for start in range(0, len(requests), max_concurrent):
            chunk = requests[start:start + max_concurrent]
            logger.info(
                f"{__name__}:call_providers_concurrently - Chunk "
                f"{start // max_concurrent + 1}/{total_chunks} size={len(chunk)}"
            )
            outcomes = await asyncio.gather(
                *(self._call_and_save(request) for request in chunk),
                return_exceptions=True,
            )
            for request, outcome in zip(chunk, outcomes):
                if isinstance(outcome, BaseException):
                    errors.append(
                        {
                            "provider": request.provider_name,
                            "phone": request.provider_phone,
                            "error": str(outcome) or type(outcome).__name__,
                        }
                    )
                    logger.error(
                        f"{__name__}:call_providers_concurrently - Call raised "
                        f"provider={request.provider_name}: {outcome!r}"
                    )
                elif outcome.status == "error" and not outcome.call_id:
                    errors.append(
                        {
                            "provider": outcome.provider.name,
                            "phone": outcome.provider.phone,
                            "error": outcome.error or outcome.ended_reason or "VAPI API error",
                        }
                    )
                    logger.error(
                        f"{__name__}:call_providers_concurrently - Call never initiated "
                        f"provider={outcome.provider.name}: {outcome.error}"
                    )
                else:
                    results.append(outcome)

            if start + max_concurrent < len(requests):
                await asyncio.sleep(self.chunk_pause)

        stats = summarize_results(results, started, time.monotonic())
        logger.info(
            f"{__name__}:call_providers_concurrently - END",
            extra={**stats, "error_count": len(errors)},
        )
        return {
            "success": len(errors) < len(requests),
            "results": results,
            "errors": errors,
            "stats": stats,
            "resultsInDatabase": True,
        }
