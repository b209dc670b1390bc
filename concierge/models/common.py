"""
Common response models and utilities.

Generic response wrappers and error schemas. The web app speaks camelCase,
so request/response models derive from CamelModel, which accepts either the
camelCase alias or the Python field name.

Dependencies: pydantic
System role: Common API response structures
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> dict[str, Any]:
        """Dump with camelCase aliases for JSON responses."""
        return self.model_dump(by_alias=True, mode="json")


class SuccessResponse(BaseModel, Generic[T]):
    """Generic success response wrapper."""

    success: bool = True
    data: T


class ErrorResponse(BaseModel):
    """Error response schema."""

    success: bool = False
    error: str = Field(description="Error message")
    details: Any | None = Field(default=None, description="Additional error context")


class Pagination(CamelModel):
    """Offset pagination metadata."""

    limit: int
    offset: int
    has_more: bool = False
