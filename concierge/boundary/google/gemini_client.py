"""
Gemini LLM client.

Two access paths:
    - LangChain ChatGoogleGenerativeAI for plain text and JSON generation
      (simulated calls, task analysis, recommendation notes)
    - google.genai Client for Google Maps grounded search, which LangChain
      does not expose; the sync SDK call runs in a worker thread

Dependencies: langchain_google_genai, langchain_core, google.genai
System role: Gemini boundary for all LLM work
"""

import asyncio
import json
import logging
import re
from typing import Any

from google import genai
from google.genai import types
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from concierge.configs.gemini import GeminiSettings
from concierge.core.exceptions import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove ```json fences the model wraps around JSON."""
    return _FENCE_PATTERN.sub("", text or "").strip()


def clean_json(text: str) -> str:
    """
    Extract the JSON payload from model output.

    Keeps the span from the first '[' or '{' to the last ']' or '}'; falls
    back to the fence-stripped text.
    """
    stripped = strip_code_fences(text)
    starts = [i for i in (stripped.find("["), stripped.find("{")) if i != -1]
    end = max(stripped.rfind("]"), stripped.rfind("}"))
    if starts and end > min(starts):
        return stripped[min(starts):end + 1]
    return stripped


def _content_text(content: Any) -> str:
    # Newer Gemini models return a list of content parts
    if isinstance(content, list):
        return "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    return content or ""


class GeminiClient:
    """
    Async Gemini client.

    Args:
        settings: API key, default model and temperature
    """

    def __init__(self, settings: GeminiSettings) -> None:
        self.settings = settings
        self._models: dict[tuple[str, float, int | None], ChatGoogleGenerativeAI] = {}
        self._genai_client: genai.Client | None = None

    def is_configured(self) -> bool:
        return self.settings.is_configured

    def _require_key(self) -> str:
        if not self.settings.api_key:
            raise ConfigurationError("Gemini")
        return self.settings.api_key

    def _chat_model(
        self,
        temperature: float | None,
        max_output_tokens: int | None,
        model: str | None,
    ) -> ChatGoogleGenerativeAI:
        key = (
            model or self.settings.model,
            self.settings.temperature if temperature is None else temperature,
            max_output_tokens,
        )
        if key not in self._models:
            self._models[key] = ChatGoogleGenerativeAI(
                model=key[0],
                temperature=key[1],
                max_output_tokens=max_output_tokens,
                google_api_key=self._require_key(),
            )
        return self._models[key]

    async def generate_text(
        self,
        prompt: str,
        system_instruction: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
        model: str | None = None,
    ) -> str:
        """
        Generate free text.

        Raises:
            ConfigurationError: No API key
            ExternalServiceError: The model call failed
        """
        chat_model = self._chat_model(temperature, max_output_tokens, model)
        messages = []
        if system_instruction:
            messages.append(SystemMessage(content=system_instruction))
        messages.append(HumanMessage(content=prompt))

        try:
            response = await chat_model.ainvoke(messages)
        except Exception as e:
            logger.error(
                f"{__name__}:generate_text - FAILED - {type(e).__name__}: {e}",
                exc_info=True,
            )
            raise ExternalServiceError(f"Gemini request failed: {e}", service="gemini") from e
        return _content_text(response.content)

    async def generate_json(
        self,
        prompt: str,
        system_instruction: str | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> Any:
        """
        Generate and decode a JSON document.

        Raises:
            ExternalServiceError: The model call failed
            ValueError: The output was not valid JSON
        """
        text = await self.generate_text(
            prompt,
            system_instruction=system_instruction,
            temperature=temperature,
            model=model,
        )
        return json.loads(clean_json(text))

    async def search_with_maps(
        self,
        prompt: str,
        latitude: float,
        longitude: float,
    ) -> tuple[list[dict[str, Any]], str]:
        """
        Run a Google Maps grounded query.

        Returns:
            tuple: (places from grounding chunks as {title, address, uri, placeId}, response text)

        Raises:
            ExternalServiceError: The model call failed
        """
        if self._genai_client is None:
            self._genai_client = genai.Client(api_key=self._require_key())

        config = types.GenerateContentConfig(
            tools=[types.Tool(google_maps=types.GoogleMaps())],
            tool_config=types.ToolConfig(
                retrieval_config=types.RetrievalConfig(
                    lat_lng=types.LatLng(latitude=latitude, longitude=longitude)
                )
            ),
        )
        try:
            response = await asyncio.to_thread(
                self._genai_client.models.generate_content,
                model=self.settings.model,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            logger.error(
                f"{__name__}:search_with_maps - FAILED - {type(e).__name__}: {e}",
                exc_info=True,
            )
            raise ExternalServiceError(
                f"Gemini Maps grounding failed: {e}", service="gemini"
            ) from e

        places = []
        candidates = response.candidates or []
        metadata = candidates[0].grounding_metadata if candidates else None
        for chunk in (metadata.grounding_chunks if metadata else None) or []:
            maps = getattr(chunk, "maps", None)
            if maps is None:
                continue
            places.append(
                {
                    "title": maps.title,
                    "address": getattr(maps, "text", None),
                    "uri": maps.uri,
                    "placeId": maps.place_id,
                }
            )
        logger.info(f"{__name__}:search_with_maps - {len(places)} grounded places")
        return places, response.text or ""
