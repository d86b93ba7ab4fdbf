"""Tests for the FastAPI server endpoints."""

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from mindful_pulse.api.server import app


@pytest.fixture
async def client():
    """Async test client with lifespan (startup / shutdown) fully executed."""
    async with LifespanManager(app) as manager:
        transport = ASGITransport(app=manager.app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["scheduler_running"] is False


@pytest.mark.asyncio
async def test_initial_status(client: AsyncClient):
    resp = await client.get("/collection/status")
    assert resp.status_code == 200
    assert resp.json() == {
        "is_enabled": False,
        "is_collecting": False,
        "last_collection_time": None,
        "reconcile_failures": 0,
        "reconcile_suspended": False,
        "diverged": False,
    }


@pytest.mark.asyncio
async def test_toggle_and_collect(client: AsyncClient):
    resp = await client.post("/collection/toggle")
    assert resp.status_code == 200
    status = resp.json()
    assert status["is_enabled"] is True
    assert status["is_collecting"] is True
    assert status["last_collection_time"] is not None

    resp = await client.post("/collection/collect")
    body = resp.json()
    assert body["result"]["sensor"]["heart_rate"] == 75
    assert body["result"]["emotion"]["happiness"] == 0.7

    resp = await client.post("/collection/sync")
    assert resp.json()["success"] is True

    resp = await client.get("/settings")
    assert resp.json()["collectionEnabled"] is True


@pytest.mark.asyncio
async def test_disabled_operations(client: AsyncClient):
    resp = await client.post("/collection/start")
    assert resp.json()["success"] is False

    resp = await client.post("/collection/collect")
    assert resp.json()["result"] is None

    resp = await client.post("/collection/stop")
    assert resp.json()["success"] is True
    assert resp.json()["status"]["is_collecting"] is False


@pytest.mark.asyncio
async def test_settings_enable_then_reconcile(client: AsyncClient):
    resp = await client.post("/settings/enable")
    assert resp.json()["collectionEnabled"] is True

    resp = await client.post("/collection/reconcile")
    body = resp.json()
    assert body["success"] is True
    assert body["status"]["is_collecting"] is True


@pytest.mark.asyncio
async def test_preferences(client: AsyncClient):
    resp = await client.patch("/settings/preferences", json={"field": "syncFrequency", "value": "daily"})
    assert resp.status_code == 200
    prefs = resp.json()["preferences"]
    assert prefs == {"syncFrequency": "daily", "notificationsEnabled": True, "privacyMode": False}

    resp = await client.patch("/settings/preferences", json={"field": "syncFrequency", "value": "weekly"})
    assert resp.status_code == 422

    resp = await client.post("/settings/privacy/toggle")
    assert resp.json()["preferences"]["privacyMode"] is True
    resp = await client.post("/settings/notifications/toggle")
    assert resp.json()["preferences"]["notificationsEnabled"] is False


@pytest.mark.asyncio
async def test_reset(client: AsyncClient):
    await client.post("/collection/toggle")
    resp = await client.post("/settings/reset")
    body = resp.json()
    assert body["collectionEnabled"] is False
    assert body["lastUpdated"] is None
    assert body["preferences"] == {
        "syncFrequency": "hourly",
        "notificationsEnabled": True,
        "privacyMode": False,
    }


@pytest.mark.asyncio
async def test_settings_persist_across_restarts():
    async with LifespanManager(app) as manager:
        transport = ASGITransport(app=manager.app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            await c.post("/collection/toggle")

    async with LifespanManager(app) as manager:
        transport = ASGITransport(app=manager.app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            resp = await c.get("/settings")
            assert resp.json()["collectionEnabled"] is True
            resp = await c.post("/collection/reconcile")
            assert resp.json()["status"]["is_collecting"] is True
