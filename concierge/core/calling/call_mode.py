"""
Call mode resolution.

Turns the live-call and admin-test-number flags into one of three modes:

    simulated  NEXT_PUBLIC_LIVE_CALL_ENABLED=true (or unset): no telephony,
               Gemini writes the conversations
    test       real calls, but the first k providers of a batch are dialed
               on the k admin test phones and the rest are simulated
    live       real calls to the real provider numbers

Dependencies: concierge.configs.features
System role: Single source of truth for "who actually gets dialed"
"""

import logging
from typing import Literal, TypeVar

from concierge.configs.features import FeatureSettings
from concierge.models.calls import CallRequest

logger = logging.getLogger(__name__)

CallMode = Literal["simulated", "test", "live"]
RequestT = TypeVar("RequestT", bound=CallRequest)


class CallModeResolver:
    """
    Resolve calling behavior from feature flags.

    Args:
        features: Feature flag settings
    """

    def __init__(self, features: FeatureSettings) -> None:
        self.features = features

    @property
    def test_phones(self) -> list[str]:
        return self.features.admin_test_phones

    @property
    def mode(self) -> CallMode:
        if self.features.call_simulation_enabled:
            return "simulated"
        if self.test_phones:
            return "test"
        return "live"

    @property
    def is_simulated(self) -> bool:
        return self.mode == "simulated"

    def plan_batch(self, requests: list[RequestT]) -> tuple[list[RequestT], list[RequestT]]:
        """
        Split a batch into calls to place and calls to simulate.

        In test mode the first k requests are redirected to the k test phones
        (provider name and IDs are kept so results land on the right rows).

        Returns:
            tuple: (live_requests, simulated_requests)
        """
        mode = self.mode
        if mode == "simulated":
            return [], list(requests)
        if mode == "live":
            return list(requests), []

        phones = self.test_phones
        live = [
            request.model_copy(update={"provider_phone": phone})
            for request, phone in zip(requests, phones)
        ]
        simulated = list(requests[len(phones):])
        logger.info(
            f"{__name__}:plan_batch - Test mode: {len(live)} redirected, {len(simulated)} simulated"
        )
        return live, simulated

    def booking_phone(self, provider_phone: str) -> str:
        """Number to dial for a booking call."""
        if self.mode == "test":
            return self.test_phones[0]
        return provider_phone
