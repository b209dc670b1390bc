"""
User CRUD operations.

Dependencies: sqlalchemy, concierge.boundary.db.models
System role: User persistence
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.boundary.db.CRUD.base_crud import BaseCRUD
from concierge.boundary.db.models.user_model import UserModel


class UserCRUD(BaseCRUD[UserModel]):
    """CRUD operations for UserModel."""

    def __init__(self) -> None:
        super().__init__(UserModel)

    async def get_by_email(self, session: AsyncSession, email: str) -> UserModel | None:
        """Retrieve a user by email (case-insensitive)."""
        stmt = select(UserModel).where(UserModel.email == email.lower())
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


user_crud = UserCRUD()
