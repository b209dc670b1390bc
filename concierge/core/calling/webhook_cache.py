"""
In-process cache of Vapi webhook call results.

The webhook route stores a partial result as soon as Vapi reports the end
of a call, then fills it in once the API has the full transcript and
analysis. Call pollers (DirectVapiClient, Kestra scripts) read from here
instead of hammering Vapi. Entries expire after 30 minutes.

Dependencies: concierge.models.calls
System role: Shared state between the Vapi webhook route and call pollers
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from concierge.models.calls import CallAnalysis, CallResult, DataStatus, StructuredCallData

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60
CLEANUP_INTERVAL_SECONDS = 5 * 60


@dataclass
class _CacheEntry:
    result: CallResult
    stored_at: float
    expires_at: float


class WebhookCache:
    """
    TTL cache of CallResult keyed by Vapi call ID.

    Args:
        ttl_seconds: Lifetime of an entry
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def set(self, call_id: str, result: CallResult, ttl_seconds: float | None = None) -> None:
        now = self._clock()
        self._entries[call_id] = _CacheEntry(
            result=result,
            stored_at=now,
            expires_at=now + (ttl_seconds or self.ttl_seconds),
        )
        logger.debug(
            f"{__name__}:set - Cached call result",
            extra={"call_id": call_id, "data_status": result.data_status, "size": len(self)},
        )

    def _live_entry(self, call_id: str) -> _CacheEntry | None:
        entry = self._entries.get(call_id)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[call_id]
            return None
        return entry

    def get(self, call_id: str) -> CallResult | None:
        """Cached result, or None when missing or expired."""
        entry = self._live_entry(call_id)
        return entry.result if entry else None

    def has(self, call_id: str) -> bool:
        return self._live_entry(call_id) is not None

    def delete(self, call_id: str) -> bool:
        return self._entries.pop(call_id, None) is not None

    def update_fetch_status(
        self,
        call_id: str,
        status: DataStatus,
        error: str | None = None,
    ) -> bool:
        """
        Record enrichment progress on a cached result.

        Returns:
            bool: False if the call is not cached
        """
        entry = self._live_entry(call_id)
        if entry is None:
            logger.warning(f"{__name__}:update_fetch_status - call_id={call_id} not cached")
            return False

        update: dict = {"data_status": status}
        if status == "fetching":
            update["fetch_attempts"] = (entry.result.fetch_attempts or 0) + 1
        if status == "complete":
            update["fetched_at"] = datetime.now(timezone.utc).isoformat()
        if error:
            update["fetch_error"] = error
        entry.result = entry.result.model_copy(update=update)
        return True

    def merge_enriched_data(self, call_id: str, enriched: CallResult) -> bool:
        """
        Fold API data into a cached webhook result and mark it complete.

        The longer transcript wins; enriched analysis fields override cached ones.

        Returns:
            bool: False if the call is not cached
        """
        entry = self._live_entry(call_id)
        if entry is None:
            logger.warning(f"{__name__}:merge_enriched_data - call_id={call_id} not cached")
            return False

        cached = entry.result
        structured = {
            **cached.analysis.structured_data.model_dump(),
            **enriched.analysis.structured_data.model_dump(exclude_unset=True),
        }
        entry.result = cached.model_copy(
            update={
                "transcript": (
                    enriched.transcript
                    if len(enriched.transcript) > len(cached.transcript)
                    else cached.transcript
                ),
                "analysis": CallAnalysis(
                    summary=enriched.analysis.summary or cached.analysis.summary,
                    structured_data=StructuredCallData(**structured),
                    success_evaluation=(
                        enriched.analysis.success_evaluation
                        or cached.analysis.success_evaluation
                    ),
                ),
                "cost": enriched.cost if enriched.cost is not None else cached.cost,
                "data_status": "complete",
                "fetched_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        logger.info(
            f"{__name__}:merge_enriched_data - Merged enriched data",
            extra={"call_id": call_id, "transcript_length": len(entry.result.transcript)},
        )
        return True

    def get_stats(self) -> dict:
        self.cleanup()
        now = self._clock()
        return {
            "size": len(self._entries),
            "entries": [
                {
                    "callId": call_id,
                    "dataStatus": entry.result.data_status,
                    "age": round(now - entry.stored_at, 1),
                }
                for call_id, entry in self._entries.items()
            ],
        }

    def cleanup(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [call_id for call_id, entry in self._entries.items() if now > entry.expires_at]
        for call_id in expired:
            del self._entries[call_id]
        if expired:
            logger.info(f"{__name__}:cleanup - Removed {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()


async def run_periodic_cleanup(
    cache: WebhookCache,
    interval_seconds: float = CLEANUP_INTERVAL_SECONDS,
) -> None:
    """Drop expired entries every `interval_seconds` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        cache.cleanup()


webhook_cache = WebhookCache()
