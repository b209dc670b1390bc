"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from concierge.boundary.db.CRUD import provider_crud

    providers = await provider_crud.get_by_request(db, request_id)
"""

from concierge.boundary.db.CRUD.base_crud import BaseCRUD
from concierge.boundary.db.CRUD.user_crud import UserCRUD, user_crud
from concierge.boundary.db.CRUD.service_request_crud import (
    ServiceRequestCRUD,
    service_request_crud,
)
from concierge.boundary.db.CRUD.provider_crud import ProviderCRUD, provider_crud
from concierge.boundary.db.CRUD.interaction_log_crud import (
    InteractionLogCRUD,
    interaction_log_crud,
)

__all__ = [
    "BaseCRUD",
    "UserCRUD",
    "user_crud",
    "ServiceRequestCRUD",
    "service_request_crud",
    "ProviderCRUD",
    "provider_crud",
    "InteractionLogCRUD",
    "interaction_log_crud",
]
