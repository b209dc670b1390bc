import asyncio
from unittest.mock import MagicMock, patch

import pytest

from concierge.api.main import create_app, lifespan


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert "timestamp" in body


def test_api_root_lists_route_groups(client):
    response = client.get("/api/v1")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "AI Concierge API"
    assert body["endpoints"]["serviceRequests"] == "/api/v1/service-requests"
    assert body["endpoints"]["health"] == "/health"


@pytest.mark.asyncio
async def test_lifespan_runs_and_cancels_cache_cleanup():
    started = asyncio.Event()
    cancelled = asyncio.Event()

    async def fake_cleanup(cache):
        started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    settings = MagicMock()
    settings.database.auto_create_tables = False
    app = create_app()

    with (
        patch("concierge.api.main.get_settings", return_value=settings),
        patch("concierge.api.main.configure_logging"),
        patch("concierge.api.main.get_service_cache", return_value=MagicMock()),
        patch("concierge.api.main.run_periodic_cleanup", new=fake_cleanup),
    ):
        async with lifespan(app):
            await asyncio.wait_for(started.wait(), timeout=1)

    assert cancelled.is_set()
