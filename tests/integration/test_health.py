"""Tests for the health endpoints (liveness and readiness)."""

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.infrastructure.cache.json_cache import CacheService
from app.infrastructure.persistence.database import Database
from app.main import create_app


@pytest.fixture
def app() -> FastAPI:
    return create_app()


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the FastAPI app (ASGI). Lifespan is not run."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _cache(ping: bool) -> MagicMock:
    cache = MagicMock(spec=CacheService)
    cache.client = MagicMock()
    cache.client.ping = AsyncMock(return_value=ping)
    return cache


async def test_liveness(client: AsyncClient) -> None:
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_ready_with_database_and_no_cache(
    app: FastAPI, client: AsyncClient, database: Database
) -> None:
    app.state.database = database
    app.state.cache = None

    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "up", "cache": "disabled"}


async def test_ready_degraded_when_cache_down(
    app: FastAPI, client: AsyncClient, database: Database
) -> None:
    """A dead cache does not make the service unready."""
    app.state.database = database
    app.state.cache = _cache(ping=False)

    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "degraded", "database": "up", "cache": "down"}


async def test_not_ready_when_database_down(app: FastAPI, client: AsyncClient) -> None:
    database = MagicMock(spec=Database)
    database.is_healthy = AsyncMock(return_value=False)
    app.state.database = database
    app.state.cache = _cache(ping=True)

    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 503
    assert response.json() == {"status": "not_ready", "database": "down", "cache": "up"}


async def test_ready_without_database_is_service_unavailable(
    app: FastAPI, client: AsyncClient
) -> None:
    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 503
    assert response.json()["error"] == "SERVICE_UNAVAILABLE"
