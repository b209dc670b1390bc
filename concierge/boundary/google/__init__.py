"""Google boundary: Places API and Gemini."""

from concierge.boundary.google.gemini_client import GeminiClient, clean_json
from concierge.boundary.google.places_client import PlacesClient

__all__ = ["GeminiClient", "PlacesClient", "clean_json"]
