"""
User domain models and schemas.

Request/response schemas for user operations.

Dependencies: pydantic
System role: User API contracts
"""

import uuid
from datetime import datetime

from pydantic import Field, model_validator

from concierge.models.common import CamelModel, Pagination

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class CreateUserRequest(CamelModel):
    """Request schema for creating a user."""

    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    name: str | None = Field(None, min_length=2, max_length=100, description="Display name")


class UpdateUserRequest(CamelModel):
    """Request schema for updating a user."""

    email: str | None = Field(None, pattern=EMAIL_PATTERN, max_length=255)
    name: str | None = Field(None, min_length=2, max_length=100)

    @model_validator(mode="after")
    def _at_least_one_field(self) -> "UpdateUserRequest":
        if self.email is None and self.name is None:
            raise ValueError("At least one field (email or name) must be provided")
        return self


class UserResponse(CamelModel):
    """Response schema for user operations."""

    id: uuid.UUID
    email: str
    name: str
    created_at: datetime
    updated_at: datetime


class UserListResponse(CamelModel):
    data: list[UserResponse]
    count: int
    pagination: Pagination
