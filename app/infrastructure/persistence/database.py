"""Persistence: Base for ORM models and the Database lifecycle object.

Database owns the async engine, the query interceptor and the store driver.
It is created once in the app lifespan (never at import time), exposes
sessions as DataClients, and runs multi-statement work through the
TransactionRunner.

When a tenant is active in app.core.tenant_context, sessions on PostgreSQL
run SET LOCAL app.current_tenant_id so row-level security policies restrict
rows to the current tenant.
"""

import logging
import re
import time
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import Settings, get_settings
from app.core.constants import TRANSACTION_DEFAULT_MAX_RETRIES
from app.core.tenant_context import get_tenant_id as get_current_tenant_id
from app.domain.enums import TenantIsolationLevel
from app.infrastructure.persistence.client import DataClient
from app.infrastructure.persistence.interceptor import QueryInterceptor
from app.infrastructure.persistence.store import ModelRegistry, SqlAlchemyStore
from app.infrastructure.persistence.transaction import (
    TRANSACTION_ISOLATION_LEVEL,
    TransactionRunner,
    Work,
    build_session_factory,
)

logger = logging.getLogger(__name__)

# Strict format for tenant_id before interpolation into SET LOCAL (CUID/UUID-style).
_TENANT_ID_MAX_LENGTH = 64
_TENANT_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{1," + str(_TENANT_ID_MAX_LENGTH) + r"}$")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


def _quote_set_value(value: str) -> str:
    """Escape a value for use in PostgreSQL SET (single-quoted literal)."""
    return value.replace("'", "''")


def _is_valid_tenant_id_for_set_local(value: str) -> bool:
    """Return True if value is safe to interpolate into SET LOCAL (format + length)."""
    if not value or len(value) > _TENANT_ID_MAX_LENGTH:
        return False
    return bool(_TENANT_ID_RE.fullmatch(value))


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create the async engine. Pool options apply to PostgreSQL only."""
    kwargs: dict[str, Any] = {"echo": settings.database_echo, "pool_pre_ping": True}
    if settings.database_url.startswith("postgresql"):
        kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_recycle=3600,
            pool_timeout=settings.connection_timeout_seconds,
            connect_args={"timeout": settings.connection_timeout_seconds},
        )
    return create_async_engine(settings.database_url, **kwargs)


def _registered_models() -> ModelRegistry:
    # Importing the package registers every model on Base.metadata.
    import app.infrastructure.persistence.models  # noqa: F401

    return ModelRegistry.from_base(Base)


class Database:
    """Process-wide access to the relational store.

    Usage:
        database = Database(settings)
        await database.connect()
        async with database.session() as client:
            await client.delete("Content", {"id": content_id})
        result = await database.transaction(work)
        await database.disconnect()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        engine: AsyncEngine | None = None,
        interceptor: QueryInterceptor | None = None,
        registry: ModelRegistry | None = None,
    ) -> None:
        """Initialize without connecting.

        Args:
            settings: Application settings (defaults to get_settings()).
            engine: Pre-built engine (tests); otherwise built from settings.
            interceptor: Pipeline around the store; defaults to the standard
                soft_delete -> tenant_audit -> timing stages.
            registry: Model lookup; defaults to every model on Base.
        """
        self.settings = settings or get_settings()
        self._connected = False
        self.engine = engine or create_engine_from_settings(self.settings)
        self.registry = registry or _registered_models()
        self.store = SqlAlchemyStore(self.registry)
        self.interceptor = interceptor or QueryInterceptor.default(
            soft_delete_models=self.registry.soft_deletable,
            audit_enabled=(
                self.settings.tenant_isolation_level is not TenantIsolationLevel.RELAXED
            ),
            slow_threshold_ms=self.settings.slow_query_threshold_ms,
        )
        self._session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        # SQLite has no READ COMMITTED; it keeps its serializable default.
        isolation_level = (
            TRANSACTION_ISOLATION_LEVEL if self.engine.dialect.name == "postgresql" else None
        )
        self.transaction_runner = TransactionRunner(
            build_session_factory(self.engine, isolation_level),
            self.bind,
            timeout_seconds=self.settings.connection_timeout_seconds,
        )

    def bind(self, session: AsyncSession) -> DataClient:
        """Return a DataClient that runs operations on session through the interceptor."""

        async def handler(operation: Any) -> Any:
            return await self.store.execute(session, operation)

        return DataClient(session, self.interceptor.wrap(handler))

    async def connect(self) -> bool:
        """Open a connection and run SELECT 1. Returns False (logged) on failure."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to connect to database: %s", e, exc_info=True)
            self._connected = False
            return False
        self._connected = True
        logger.info("Database connected successfully (dialect=%s)", self.engine.dialect.name)
        return True

    @property
    def is_connected(self) -> bool:
        """Result of the last connect(); False again after disconnect()."""
        return self._connected

    async def disconnect(self) -> None:
        """Dispose the connection pool."""
        await self.engine.dispose()
        self._connected = False
        logger.info("Database disconnected")

    async def is_healthy(self) -> bool:
        """Return True when SELECT 1 succeeds. Never raises."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed: %s", e)
            return False

    async def _set_tenant_context(self, session: AsyncSession) -> None:
        """Set app.current_tenant_id on the session for RLS (PostgreSQL, tenant set).

        SET LOCAL does not support bound parameters in PostgreSQL; the value must be
        interpolated. We validate format (CUID/UUID-style, max length) and escape
        single quotes. If validation fails, we skip SET LOCAL and log.
        """
        if self.engine.dialect.name != "postgresql":
            return
        tenant_id = get_current_tenant_id()
        if not tenant_id:
            return
        if not _is_valid_tenant_id_for_set_local(tenant_id):
            logger.warning(
                "Skipping SET LOCAL app.current_tenant_id: tenant_id failed format validation (length=%d, max=%d)",
                len(tenant_id),
                _TENANT_ID_MAX_LENGTH,
            )
            return
        safe = _quote_set_value(tenant_id)
        await session.execute(text(f"SET LOCAL app.current_tenant_id = '{safe}'"))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[DataClient]:
        """Yield a DataClient in a transaction: commit on success, rollback on exception."""
        async with self._session_factory() as session:
            async with session.begin():
                await self._set_tenant_context(session)
                yield self.bind(session)

    async def transaction(
        self,
        work: Work,
        max_retries: int = TRANSACTION_DEFAULT_MAX_RETRIES,
        *,
        is_retryable: Callable[[BaseException], bool] | None = None,
    ) -> Any:
        """Run work(client) under READ COMMITTED with timeout and retries."""

        async def scoped(client: DataClient) -> Any:
            await self._set_tenant_context(client.session)
            return await work(client)

        return await self.transaction_runner.run(
            scoped, max_retries=max_retries, is_retryable=is_retryable
        )

    async def execute_raw(
        self, sql: str, params: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]] | int:
        """Execute a raw SQL statement with bound parameters.

        Returns:
            Rows as dicts for statements that return rows, else the row count.
        """
        start = time.perf_counter()
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(text(sql), dict(params or {}))
                if result.returns_rows:
                    return [dict(row) for row in result.mappings().all()]
                return result.rowcount
        except SQLAlchemyError as e:
            logger.error("Raw query failed: %s", e, extra={"sql": sql})
            raise
        finally:
            logger.debug("Raw query executed in %.1fms", (time.perf_counter() - start) * 1000)
