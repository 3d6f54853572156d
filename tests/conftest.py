"""Pytest configuration and fixtures.

Store tests run against in-memory SQLite (aiosqlite); cache tests against
fakeredis. Settings are built explicitly so no .env or live services are
needed.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_ENABLED", "false")

from collections.abc import AsyncIterator

import pytest
from fakeredis import FakeAsyncRedis
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

# Import all models so metadata is populated
import app.infrastructure.persistence.models  # noqa: F401
from app.core.config import Settings
from app.infrastructure.cache.json_cache import CacheService
from app.infrastructure.cache.redis_cache import RedisCache
from app.infrastructure.persistence.database import Base, Database


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite+aiosqlite://", redis_enabled=False)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with all tables; one shared connection per test."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def database(settings: Settings, engine: AsyncEngine) -> Database:
    return Database(settings, engine=engine)


@pytest.fixture
async def fake_redis() -> AsyncIterator[FakeAsyncRedis]:
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
async def redis_cache(
    fake_redis: FakeAsyncRedis, settings: Settings, recording_sleep: RecordingSleep
) -> RedisCache:
    """RedisCache connected to fakeredis."""
    cache = RedisCache(fake_redis, settings, sleep=recording_sleep)
    assert await cache.connect()
    return cache


@pytest.fixture
def cache_service(redis_cache: RedisCache) -> CacheService:
    return CacheService(redis_cache)
