"""
API test fixtures.

The client is created without entering the lifespan, so no database or
service cache is touched; routes get their services via dependency_overrides.
"""

import pytest
from fastapi.testclient import TestClient

from concierge.api.main import create_app


@pytest.fixture
def client():
    app = create_app()
    yield TestClient(app)
    app.dependency_overrides.clear()
