"""
Service request CRUD operations.

Adds workflow queries: status transitions and the phone lookups used to
match inbound SMS replies to the request they answer.

Dependencies: sqlalchemy, concierge.boundary.db.models
System role: Service request persistence
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.boundary.db.CRUD.base_crud import BaseCRUD
from concierge.boundary.db.models.service_request_model import (
    SELECTABLE_STATUSES,
    RequestStatus,
    ServiceRequestModel,
)


class ServiceRequestCRUD(BaseCRUD[ServiceRequestModel]):
    """CRUD operations for ServiceRequestModel."""

    def __init__(self) -> None:
        super().__init__(ServiceRequestModel)

    async def update_status(
        self,
        session: AsyncSession,
        id: UUID,
        status: RequestStatus,
        **fields,
    ) -> ServiceRequestModel | None:
        """
        Move a request to a new workflow status.

        Args:
            session: Async database session
            id: Service request UUID
            status: New status
            **fields: Extra columns to update in the same statement

        Returns:
            Updated request, or None if not found
        """
        return await self.update_by_id(session, id, status=status, **fields)

    async def get_by_user(
        self,
        session: AsyncSession,
        user_id: UUID,
        limit: int | None = None,
    ) -> Sequence[ServiceRequestModel]:
        """Requests owned by a user, newest first."""
        stmt = (
            select(ServiceRequestModel)
            .where(ServiceRequestModel.user_id == user_id)
            .order_by(ServiceRequestModel.created_at.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def find_awaiting_selection(
        self,
        session: AsyncSession,
        user_phone: str,
    ) -> ServiceRequestModel | None:
        """
        Latest request for a phone that is waiting on the user's pick.

        Only requests that already hold recommendations qualify.
        """
        stmt = (
            select(ServiceRequestModel)
            .where(ServiceRequestModel.user_phone == user_phone)
            .where(ServiceRequestModel.status.in_(SELECTABLE_STATUSES))
            .where(ServiceRequestModel.recommendations.is_not(None))
            .order_by(ServiceRequestModel.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_latest_completed(
        self,
        session: AsyncSession,
        user_phone: str,
    ) -> ServiceRequestModel | None:
        """Most recent COMPLETED request for a phone."""
        stmt = (
            select(ServiceRequestModel)
            .where(ServiceRequestModel.user_phone == user_phone)
            .where(ServiceRequestModel.status == RequestStatus.COMPLETED)
            .order_by(ServiceRequestModel.updated_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


service_request_crud = ServiceRequestCRUD()
