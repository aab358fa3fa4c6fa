"""
Collab Platform API - Health Check Tests
=========================================

What we test:
    ✅ 200 with service identity and a connected database
    ✅ Still 200 (status "degraded") when the database probe fails
"""

from unittest.mock import AsyncMock

import pytest

from collab_api.config import Settings
from collab_api.database import Database


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_ok(self, test_client, app_settings):
        response = await test_client.get("/health")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "ok"
        assert data["database"] == "connected"
        assert data["service"] == {
            "name": app_settings.app_name,
            "version": app_settings.app_version,
            "environment": "test",
        }
        assert data["uptimeSeconds"] >= 0
        assert "timestamp" in data

    @pytest.mark.asyncio
    async def test_health_degraded_is_still_200(self, app, test_client):
        app.state.database.ping = AsyncMock(return_value=False)

        response = await test_client.get("/health")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "degraded"
        assert data["database"] == "disconnected"


class TestDatabasePing:

    @pytest.mark.asyncio
    async def test_reachable_database(self, app):
        assert await app.state.database.ping() is True

    @pytest.mark.asyncio
    async def test_unreachable_database(self, tmp_path):
        missing = tmp_path / "missing" / "nested" / "x.db"
        database = Database(Settings(database_url=f"sqlite+aiosqlite:///{missing}"))
        try:
            assert await database.ping() is False
        finally:
            await database.dispose()
