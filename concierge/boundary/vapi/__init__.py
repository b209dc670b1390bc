"""Vapi REST clients for placing and inspecting AI phone calls."""

from concierge.boundary.vapi.vapi_api_client import VapiApiClient
from concierge.boundary.vapi.direct_vapi_client import DirectVapiClient

__all__ = ["DirectVapiClient", "VapiApiClient"]
