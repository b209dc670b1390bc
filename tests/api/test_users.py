from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from concierge.api.deps import get_user_service
from concierge.core.exceptions import ConflictError, UserNotFoundError
from concierge.models.users import UserResponse


@pytest.fixture
def mock_user_service(client):
    service = AsyncMock()
    client.app.dependency_overrides[get_user_service] = lambda: service
    return service


def _user(**overrides) -> UserResponse:
    now = datetime.now(timezone.utc)
    fields = {"id": uuid4(), "email": "sam@example.com", "name": "Sam", "created_at": now, "updated_at": now}
    fields.update(overrides)
    return UserResponse(**fields)


def test_create_user(client, mock_user_service):
    user = _user()
    mock_user_service.create_user.return_value = user

    response = client.post("/api/v1/users", json={"email": "sam@example.com", "name": "Sam"})

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["id"] == str(user.id)
    assert "createdAt" in body["data"]
    mock_user_service.create_user.assert_awaited_once()


def test_create_user_invalid_email(client, mock_user_service):
    response = client.post("/api/v1/users", json={"email": "not-an-email"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Validation error"
    assert body["details"]
    mock_user_service.create_user.assert_not_called()


def test_create_user_conflict(client, mock_user_service):
    mock_user_service.create_user.side_effect = ConflictError(
        "A user with this email already exists", {"email": "sam@example.com"}
    )

    response = client.post("/api/v1/users", json={"email": "sam@example.com"})

    assert response.status_code == 409
    assert response.json()["error"] == "A user with this email already exists"


def test_get_user_not_found(client, mock_user_service):
    user_id = uuid4()
    mock_user_service.get_user.side_effect = UserNotFoundError(str(user_id))

    response = client.get(f"/api/v1/users/{user_id}")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": f"User not found: {user_id}",
        "details": {"user_id": str(user_id)},
    }


def test_delete_user(client, mock_user_service):
    response = client.delete(f"/api/v1/users/{uuid4()}")

    assert response.status_code == 204
    mock_user_service.delete_user.assert_awaited_once()
