"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic (SRP). Used by main.py;
no business logic here, only wiring of infrastructure (database, cache,
telemetry).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.core.config import get_settings
from app.infrastructure.cache.json_cache import CacheService
from app.infrastructure.cache.redis_cache import RedisCache
from app.infrastructure.persistence.database import Database
from app.shared.telemetry.logging import setup_logging
from app.shared.telemetry.telemetry import TelemetryConfig, get_telemetry, set_telemetry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, telemetry (if enabled), database, Redis cache
    (if enabled). A database or cache that cannot be reached does not stop
    startup; the readiness probe reports it. Shutdown order: cache
    disconnect, database dispose, telemetry shutdown.
    """
    settings = get_settings()

    # ---- Startup ----
    setup_logging()

    if settings.telemetry_enabled:
        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            environment=settings.environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        telemetry.instrument_fastapi(app)
        logger.info("Telemetry initialized")

    database = Database(settings)
    if not await database.connect():
        logger.error("Starting without a reachable database")
    app.state.database = database

    if settings.redis_enabled:
        redis_cache = RedisCache(settings=settings)
        await redis_cache.connect()
        app.state.cache = CacheService(redis_cache, default_ttl=settings.cache_ttl_default)
    else:
        app.state.cache = None

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.instrument_sqlalchemy(database.engine)
        if settings.redis_enabled:
            telemetry_instance.instrument_redis()

    yield

    # ---- Shutdown ----
    if getattr(app.state, "cache", None) is not None:
        await app.state.cache.client.disconnect()
        logger.info("Cache disconnected")

    await app.state.database.disconnect()

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        set_telemetry(None)
        logger.info("Telemetry shutdown complete")
