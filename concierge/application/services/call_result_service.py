"""
Call result persistence.

Writes a finished call onto its provider row and appends it to the request
timeline. Both the webhook enrichment task and the calling services save
the same call, so the timeline insert is deduplicated on call_id.

Database failures are logged and rolled back but never raised: a lost
write must not turn a completed phone call into an API error.

Dependencies: sqlalchemy, concierge.boundary.db.CRUD
System role: Call outcome persistence
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.boundary.db.connection import session_scope
from concierge.boundary.db.CRUD.interaction_log_crud import interaction_log_crud
from concierge.boundary.db.CRUD.provider_crud import provider_crud
from concierge.boundary.db.models.interaction_log_model import LogStatus
from concierge.models.calls import CallRequest, CallResult
from concierge.observability.log_utils import log_with_context

logger = logging.getLogger(__name__)


def parse_uuid(value: str | None) -> UUID | None:
    """UUID for a DB ID, or None for missing or client-side IDs (task-xxx)."""
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


def parse_transcript(transcript: str) -> list[dict[str, str]] | None:
    """Split 'Speaker: text' lines into timeline transcript entries."""
    if not transcript:
        return None
    entries = []
    for line in transcript.splitlines():
        if not line.strip():
            continue
        speaker, sep, text = line.partition(":")
        if sep:
            entries.append({"speaker": speaker.strip(), "text": text.strip()})
        else:
            entries.append({"speaker": "unknown", "text": line.strip()})
    return entries


def log_status_for(result: CallResult) -> LogStatus:
    if result.status == "completed":
        return LogStatus.SUCCESS
    if result.status == "error":
        return LogStatus.ERROR
    return LogStatus.WARNING


class CallResultService:
    """Persists call outcomes to providers and interaction_logs."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Args:
            db: Async SQLAlchemy session
        """
        self.db = db

    async def save_call_result(self, result: CallResult, request: CallRequest) -> None:
        """
        Save a call outcome.

        The provider row is updated only for a UUID providerId and the
        timeline entry is written only for a UUID serviceRequestId.
        """
        provider_id = parse_uuid(request.provider_id)
        request_id = parse_uuid(request.service_request_id)

        try:
            if provider_id is not None:
                await provider_crud.update_by_id(
                    self.db,
                    provider_id,
                    call_status=result.status,
                    call_result=result.analysis.structured_data.model_dump(),
                    call_transcript=result.transcript,
                    call_summary=result.analysis.summary,
                    call_duration_minutes=result.duration,
                    call_cost=result.cost,
                    call_method=result.call_method,
                    call_id=result.call_id or None,
                    called_at=datetime.now(timezone.utc),
                )

            if request_id is not None:
                summary = (
                    result.analysis.summary
                    or f"Call to {result.provider.name}: {result.status}"
                )
                if result.call_id:
                    summary = f"{summary} [Call ID: {result.call_id}]"
                inserted = await interaction_log_crud.add_log(
                    self.db,
                    request_id=request_id,
                    step_name=f"Calling {result.provider.name}",
                    detail=summary,
                    status=log_status_for(result),
                    transcript=parse_transcript(result.transcript),
                    call_id=result.call_id or None,
                )
                if not inserted:
                    logger.debug(
                        f"{__name__}:save_call_result - Duplicate call log ignored",
                        extra={"call_id": result.call_id},
                    )

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"{__name__}:save_call_result - FAILED - {type(e).__name__}: {e}",
                extra={"call_id": result.call_id, "provider_id": request.provider_id},
            )
            return

        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:save_call_result - Call result saved",
            call_id=result.call_id,
            status=result.status,
            provider=result.provider.name,
            transcript=result.transcript,
        )

    async def mark_call_in_progress(self, provider_id: str, call_id: str) -> None:
        """Flag a provider as being on the phone right now."""
        provider_uuid = parse_uuid(provider_id)
        if provider_uuid is None:
            return
        try:
            await provider_crud.update_by_id(
                self.db,
                provider_uuid,
                call_status="in_progress",
                call_id=call_id,
                called_at=datetime.now(timezone.utc),
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(
                f"{__name__}:mark_call_in_progress - FAILED - {type(e).__name__}: {e}",
                extra={"provider_id": provider_id, "call_id": call_id},
            )


async def persist_call_result(result: CallResult, request: CallRequest) -> None:
    """Save a call result in its own session (for concurrent and background callers)."""
    async with session_scope() as session:
        await CallResultService(session).save_call_result(result, request)
