"""
Interaction log ORM model.

Timeline entries shown to the user ("Calling Joe's Plumbing", "Booking
Confirmed"). Call logs carry the transcript and are unique per call_id so
that webhook and polling paths cannot double-write the same call.

Dependencies: sqlalchemy, concierge.boundary.db.base
System role: Audit trail for each service request
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from concierge.boundary.db.base import Base, UUIDMixin, utcnow


class LogStatus(str, enum.Enum):
    """Timeline entry severity."""

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


class InteractionLogModel(Base, UUIDMixin):
    """Timeline entry for a service request."""

    __tablename__ = "interaction_logs"

    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("service_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    step_name: Mapped[str] = mapped_column(String(255), nullable=False)
    detail: Mapped[str] = mapped_column(Text, nullable=False, default="")
    transcript: Mapped[list | None] = mapped_column(
        JSON,
        nullable=True,
        doc="List of {speaker, text} turns",
    )
    status: Mapped[LogStatus] = mapped_column(
        Enum(LogStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=LogStatus.INFO,
    )
    call_id: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        unique=True,
        doc="Vapi/simulated call ID; duplicate inserts are ignored",
    )
