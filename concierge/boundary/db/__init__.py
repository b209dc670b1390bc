"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(), session_scope()
  - UserModel, ServiceRequestModel, ProviderModel, InteractionLogModel
  - user_crud, service_request_crud, provider_crud, interaction_log_crud

Dependencies: sqlalchemy, concierge.configs
System role: Database adapter for users, service requests, providers and timelines
"""

from concierge.boundary.db.base import Base, TimestampMixin, UUIDMixin
from concierge.boundary.db.connection import (
    get_async_db,
    get_async_engine,
    get_async_session_factory,
    session_scope,
)
from concierge.boundary.db.models import (
    InteractionLogModel,
    LogStatus,
    ProviderModel,
    RequestStatus,
    RequestType,
    ServiceRequestModel,
    UserModel,
)
from concierge.boundary.db.CRUD import (
    BaseCRUD,
    interaction_log_crud,
    provider_crud,
    service_request_crud,
    user_crud,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    "session_scope",
    "InteractionLogModel",
    "LogStatus",
    "ProviderModel",
    "RequestStatus",
    "RequestType",
    "ServiceRequestModel",
    "UserModel",
    "BaseCRUD",
    "interaction_log_crud",
    "provider_crud",
    "service_request_crud",
    "user_crud",
]
