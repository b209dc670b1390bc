"""
Provider CRUD operations.

Dependencies: sqlalchemy, concierge.boundary.db.models
System role: Provider persistence for calling and booking
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.boundary.db.CRUD.base_crud import BaseCRUD
from concierge.boundary.db.models.provider_model import ProviderModel


class ProviderCRUD(BaseCRUD[ProviderModel]):
    """CRUD operations for ProviderModel."""

    def __init__(self) -> None:
        super().__init__(ProviderModel)

    async def get_by_request(
        self,
        session: AsyncSession,
        request_id: UUID,
    ) -> Sequence[ProviderModel]:
        """All providers for a service request in insertion order."""
        stmt = (
            select(ProviderModel)
            .where(ProviderModel.request_id == request_id)
            .order_by(ProviderModel.created_at)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def set_call_status(
        self,
        session: AsyncSession,
        ids: list[UUID],
        call_status: str,
    ) -> int:
        """
        Set call_status on several providers at once.

        Returns:
            int: Number of rows updated
        """
        if not ids:
            return 0
        stmt = (
            update(ProviderModel)
            .where(ProviderModel.id.in_(ids))
            .values(call_status=call_status)
        )
        result = await session.execute(stmt)
        return result.rowcount


provider_crud = ProviderCRUD()
