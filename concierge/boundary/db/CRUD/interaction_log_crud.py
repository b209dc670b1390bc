"""
Interaction log CRUD operations.

Call logs are written from two places (webhook enrichment and the calling
service), so inserts keyed by call_id use ON CONFLICT DO NOTHING.

Dependencies: sqlalchemy, concierge.boundary.db.models
System role: Request timeline persistence
"""

from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.boundary.db.CRUD.base_crud import BaseCRUD
from concierge.boundary.db.models.interaction_log_model import (
    InteractionLogModel,
    LogStatus,
)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class InteractionLogCRUD(BaseCRUD[InteractionLogModel]):
    """CRUD operations for InteractionLogModel."""

    def __init__(self) -> None:
        super().__init__(InteractionLogModel)

    async def add_log(
        self,
        session: AsyncSession,
        request_id: UUID,
        step_name: str,
        detail: str,
        status: LogStatus = LogStatus.INFO,
        transcript: list[dict[str, Any]] | None = None,
        call_id: str | None = None,
    ) -> bool:
        """
        Append a timeline entry.

        When call_id is given and already logged, nothing is written.

        Returns:
            bool: True if a row was inserted
        """
        values = {
            "request_id": request_id,
            "step_name": step_name,
            "detail": detail,
            "status": status,
            "transcript": transcript,
            "call_id": call_id,
        }
        if call_id is None:
            await self.create(session, **values)
            return True

        dialect = session.get_bind().dialect.name
        insert = _DIALECT_INSERTS.get(dialect)
        if insert is None:
            existing = await self.get_by_call_id(session, call_id)
            if existing is not None:
                return False
            await self.create(session, **values)
            return True

        stmt = (
            insert(InteractionLogModel)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["call_id"])
        )
        result = await session.execute(stmt)
        return result.rowcount > 0

    async def get_by_call_id(
        self,
        session: AsyncSession,
        call_id: str,
    ) -> InteractionLogModel | None:
        """Retrieve the log entry for a call."""
        stmt = select(InteractionLogModel).where(InteractionLogModel.call_id == call_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_request(
        self,
        session: AsyncSession,
        request_id: UUID,
    ) -> Sequence[InteractionLogModel]:
        """Timeline for a request, oldest first."""
        stmt = (
            select(InteractionLogModel)
            .where(InteractionLogModel.request_id == request_id)
            .order_by(InteractionLogModel.timestamp)
        )
        result = await session.execute(stmt)
        return result.scalars().all()


interaction_log_crud = InteractionLogCRUD()
