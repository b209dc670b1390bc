"""
User ORM model.

Dependencies: sqlalchemy, concierge.boundary.db.base
System role: Account records owning service requests
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from concierge.boundary.db.base import Base, TimestampMixin, UUIDMixin


class UserModel(Base, UUIDMixin, TimestampMixin):
    """
    Concierge user.

    Attributes:
        id: UUID primary key (auto-generated)
        email: Unique login email
        name: Display name (2-100 characters)
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
