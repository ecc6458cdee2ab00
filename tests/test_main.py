"""
Tests for the FastAPI application: routes, health check and configuration.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from nextsub.core.config import settings
from nextsub.main import app


class TestAppConfiguration:
    def test_app_title(self):
        assert app.title == settings.APP_NAME

    def test_admin_routes_registered(self):
        paths = app.openapi()["paths"]

        assert "post" in paths["/admin/request-code"]
        assert "post" in paths["/admin/verify-code"]
        assert "get" in paths["/admin/me"]
        assert "post" in paths["/admin/logout"]
        assert "get" in paths["/health"]


class TestRootEndpoint:
    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["version"] == settings.APP_VERSION


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_health_ok(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["checks"] == {"database": "ok", "redis": "not_configured"}

    @pytest.mark.asyncio
    async def test_health_database_down(self, app, client):
        from nextsub.core.dependencies import get_async_session

        broken = MagicMock()
        broken.begin.return_value.__aenter__ = AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("down"))
        )
        broken.begin.return_value.__aexit__ = AsyncMock(return_value=False)

        async def override():
            yield broken

        app.dependency_overrides[get_async_session] = override
        response = await client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_health_redis_down(self, client):
        with (
            patch.object(settings, "RATE_LIMIT_BACKEND", "redis"),
            patch(
                "nextsub.main.RedisService.ping",
                new_callable=AsyncMock,
                return_value=False,
            ),
        ):
            response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["checks"]["redis"] == "unhealthy"
