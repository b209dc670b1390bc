"""
User API endpoints.

Routes:
- GET /users - List users (paginated)
- GET /users/{id} - Get single user
- POST /users - Create user
- PATCH /users/{id} - Update user
- DELETE /users/{id} - Delete user

Dependencies: concierge.application.services.user_service, concierge.models.users
System role: User management HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from concierge.api.deps import get_user_service
from concierge.api.routers.error_handling import handle_api_errors, success_response
from concierge.application.services import UserService
from concierge.models.users import CreateUserRequest, UpdateUserRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
@handle_api_errors
async def list_users(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_service: UserService = Depends(get_user_service),
):
    """
    List users, newest first.

    Returns:
        {success, data, count, pagination{limit, offset, hasMore}}
    """
    page = await user_service.list_users(limit=limit, offset=offset)
    body = page.to_api()
    return success_response(body.pop("data"), **body)


@router.get("/{user_id}")
@handle_api_errors
async def get_user(
    user_id: UUID,
    user_service: UserService = Depends(get_user_service),
):
    user = await user_service.get_user(user_id)
    return success_response(user.to_api())


@router.post("")
@handle_api_errors
async def create_user(
    request: CreateUserRequest,
    user_service: UserService = Depends(get_user_service),
):
    """
    Create a user.

    Raises:
        409: Email already registered
    """
    user = await user_service.create_user(request)
    return success_response(user.to_api(), status_code=201)


@router.patch("/{user_id}")
@handle_api_errors
async def update_user(
    user_id: UUID,
    request: UpdateUserRequest,
    user_service: UserService = Depends(get_user_service),
):
    user = await user_service.update_user(user_id, request)
    return success_response(user.to_api())


@router.delete("/{user_id}", status_code=204)
@handle_api_errors
async def delete_user(
    user_id: UUID,
    user_service: UserService = Depends(get_user_service),
):
    await user_service.delete_user(user_id)
    return Response(status_code=204)
