"""
Provider ORM model.

One row per business considered for a service request. Columns fall into
three groups: research data (Places), call outcome (screening call) and
booking outcome (scheduling call).

Dependencies: sqlalchemy, concierge.boundary.db.base
System role: Provider persistence for calling, recommendation and booking
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from concierge.boundary.db.base import Base, TimestampMixin, UUIDMixin


class ProviderModel(Base, UUIDMixin, TimestampMixin):
    """Service provider attached to a service request."""

    __tablename__ = "providers"

    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("service_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True, doc="0-5 stars")
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="Google Maps",
        doc="Google Maps or User Input",
    )

    # Research data
    review_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    distance: Mapped[float | None] = mapped_column(Float, nullable=True, doc="Miles")
    distance_text: Mapped[str | None] = mapped_column(String(32), nullable=True)
    hours_of_operation: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    is_open_now: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    place_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    google_maps_uri: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)
    international_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Screening call outcome
    call_status: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    call_result: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    call_transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    call_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    call_duration_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    call_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    call_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    call_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    called_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Booking call outcome
    booking_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    booking_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    booking_time: Mapped[str | None] = mapped_column(String(64), nullable=True)
    confirmation_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_call_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
