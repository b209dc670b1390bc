"""
Service request ORM model.

A service request is one user job ("find me a plumber tomorrow") and carries
the workflow state from research through booking.

Dependencies: sqlalchemy, concierge.boundary.db.base
System role: Root aggregate of the concierge workflow
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from concierge.boundary.db.base import Base, TimestampMixin, UUIDMixin


class RequestType(str, enum.Enum):
    """
    How the concierge handles a request.

    RESEARCH_AND_BOOK: Find providers, screen them by phone, book the best one
    DIRECT_TASK: Call a single number the user supplied with a custom task
    """

    RESEARCH_AND_BOOK = "RESEARCH_AND_BOOK"
    DIRECT_TASK = "DIRECT_TASK"


class RequestStatus(str, enum.Enum):
    """
    Workflow states.

    PENDING -> SEARCHING -> CALLING -> ANALYZING -> RECOMMENDED -> BOOKING -> COMPLETED
    Any state may move to FAILED. A failed booking returns BOOKING to RECOMMENDED.
    """

    PENDING = "PENDING"
    SEARCHING = "SEARCHING"
    CALLING = "CALLING"
    ANALYZING = "ANALYZING"
    RECOMMENDED = "RECOMMENDED"
    BOOKING = "BOOKING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# Statuses in which an SMS reply "1", "2" or "3" is treated as a selection
SELECTABLE_STATUSES = (
    RequestStatus.RECOMMENDED,
    RequestStatus.BOOKING,
    RequestStatus.CALLING,
    RequestStatus.ANALYZING,
)


class ServiceRequestModel(Base, UUIDMixin, TimestampMixin):
    """
    Service request ORM model.

    Attributes:
        user_id: Owning user, if any
        type: RESEARCH_AND_BOOK or DIRECT_TASK
        status: Current workflow state
        selected_provider_id: Provider chosen by the user (no FK; providers
            reference requests, so a back-reference FK would be circular)
        recommendations: Latest recommendation payload (top 3 + reasoning)
        notification_sent_at: Set once the user has been notified; used to dedupe
        user_selection: 1-3, the option the user picked by SMS or phone
    """

    __tablename__ = "service_requests"

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    type: Mapped[RequestType] = mapped_column(
        Enum(RequestType, native_enum=False),
        nullable=False,
        default=RequestType.RESEARCH_AND_BOOK,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    criteria: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, native_enum=False),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True,
    )
    selected_provider_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )
    final_outcome: Mapped[str | None] = mapped_column(Text, nullable=True)
    direct_contact_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    preferred_contact: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="text",
        doc="phone or text",
    )
    user_phone: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    notification_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    notification_method: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
        doc="sms or vapi",
    )
    user_selection: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sms_message_sid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    recommendations: Mapped[dict | None] = mapped_column(JSON(none_as_null=True), nullable=True)
