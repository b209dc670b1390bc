"""
Database models package.

Exports:
  - UserModel
  - ServiceRequestModel, RequestStatus, RequestType
  - ProviderModel
  - InteractionLogModel, LogStatus

Dependencies: sqlalchemy, concierge.boundary.db.base
System role: Database model definitions for domain entities
"""

from concierge.boundary.db.models.user_model import UserModel
from concierge.boundary.db.models.service_request_model import (
    SELECTABLE_STATUSES,
    RequestStatus,
    RequestType,
    ServiceRequestModel,
)
from concierge.boundary.db.models.provider_model import ProviderModel
from concierge.boundary.db.models.interaction_log_model import InteractionLogModel, LogStatus

__all__ = [
    "UserModel",
    "ServiceRequestModel",
    "RequestStatus",
    "RequestType",
    "SELECTABLE_STATUSES",
    "ProviderModel",
    "InteractionLogModel",
    "LogStatus",
]
