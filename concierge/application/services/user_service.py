"""
User service orchestrator.

Dependencies: concierge.boundary.db.CRUD
System role: User use case orchestration
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.boundary.db.CRUD.user_crud import user_crud
from concierge.core.exceptions import ConflictError, UserNotFoundError
from concierge.models.common import Pagination
from concierge.models.users import (
    CreateUserRequest,
    UpdateUserRequest,
    UserListResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)


class UserService:
    """User service orchestrator."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Args:
            db: Async SQLAlchemy session
        """
        self.db = db

    async def list_users(self, limit: int = 50, offset: int = 0) -> UserListResponse:
        """
        Page through users, newest first.

        Args:
            limit: Page size
            offset: Rows to skip

        Returns:
            UserListResponse: Users plus total count and pagination
        """
        users = await user_crud.get_all(self.db, limit=limit, offset=offset)
        total = await user_crud.count(self.db)
        return UserListResponse(
            data=[UserResponse.model_validate(u, from_attributes=True) for u in users],
            count=total,
            pagination=Pagination(limit=limit, offset=offset, has_more=offset + limit < total),
        )

    async def get_user(self, user_id: UUID) -> UserResponse:
        """
        Raises:
            UserNotFoundError: No user with this ID
        """
        user = await user_crud.get_by_id(self.db, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return UserResponse.model_validate(user, from_attributes=True)

    async def create_user(self, payload: CreateUserRequest) -> UserResponse:
        """
        Create a user.

        Emails are stored lowercase. A missing name defaults to the email's
        local part.

        Raises:
            ConflictError: Email already registered
        """
        email = payload.email.lower()
        if await user_crud.get_by_email(self.db, email) is not None:
            raise ConflictError("A user with this email already exists", {"email": email})

        try:
            user = await user_crud.create(
                self.db,
                email=email,
                name=payload.name or email.split("@")[0],
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("A user with this email already exists", {"email": email}) from e

        logger.info(f"{__name__}:create_user - Created", extra={"user_id": str(user.id)})
        return UserResponse.model_validate(user, from_attributes=True)

    async def update_user(self, user_id: UUID, payload: UpdateUserRequest) -> UserResponse:
        """
        Raises:
            UserNotFoundError: No user with this ID
            ConflictError: New email belongs to another user
        """
        fields = payload.model_dump(exclude_none=True)
        if "email" in fields:
            fields["email"] = fields["email"].lower()
            existing = await user_crud.get_by_email(self.db, fields["email"])
            if existing is not None and existing.id != user_id:
                raise ConflictError("A user with this email already exists", {"email": fields["email"]})

        user = await user_crud.update_by_id(self.db, user_id, **fields)
        if user is None:
            raise UserNotFoundError(str(user_id))
        await self.db.commit()
        return UserResponse.model_validate(user, from_attributes=True)

    async def delete_user(self, user_id: UUID) -> None:
        """
        Raises:
            UserNotFoundError: No user with this ID
        """
        deleted = await user_crud.delete_by_id(self.db, user_id)
        if not deleted:
            raise UserNotFoundError(str(user_id))
        await self.db.commit()
