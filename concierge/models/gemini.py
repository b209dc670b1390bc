"""
Gemini quick-workflow models.

Contracts for the lightweight /gemini routes the web app uses for its
single-page demo flow: search, simulated vetting call, pick, schedule.

Dependencies: pydantic, concierge.models.common
System role: Request/response schemas for /api/v1/gemini
"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import Field

from concierge.models.common import CamelModel
from concierge.models.research import Coordinates

LogEntryStatus = Literal["success", "warning", "error", "info"]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TranscriptLine(CamelModel):
    speaker: str
    text: str


class InteractionLogEntry(CamelModel):
    """One step of the demo timeline."""

    timestamp: str = Field(default_factory=_now_iso)
    step_name: str
    detail: str
    transcript: list[TranscriptLine] | None = None
    status: LogEntryStatus


class QuickProvider(CamelModel):
    id: str
    name: str
    phone: str | None = None
    rating: float | None = None
    address: str | None = None
    source: Literal["Google Maps", "User Input"] | None = None


class SearchProvidersRequest(CamelModel):
    query: str = Field(min_length=1)
    location: str = Field(min_length=1)
    coordinates: Coordinates | None = None


class SearchProvidersResult(CamelModel):
    providers: list[QuickProvider]
    logs: InteractionLogEntry


class SimulateCallLogRequest(CamelModel):
    provider_name: str = Field(min_length=1)
    user_criteria: str = Field(min_length=1)
    is_direct: bool = False


class SelectBestProviderRequest(CamelModel):
    request_title: str = Field(min_length=1)
    interactions: list[InteractionLogEntry]
    providers: list[QuickProvider]


class SelectBestProviderResult(CamelModel):
    selected_id: str | None = None
    reasoning: str


class ScheduleAppointmentRequest(CamelModel):
    provider_name: str = Field(min_length=1)
    details: str = Field(min_length=1)
