"""Tenant lifecycle: archive (soft delete) a tenant that owns no live records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.domain.enums import TenantStatus
from app.domain.exceptions import (
    CmsException,
    TenantHasActiveRecordsException,
    TenantNotFoundException,
)
from app.infrastructure.persistence.models import (
    Content,
    MerchProduct,
    NewsArticle,
    Tenant,
    User,
)
from app.infrastructure.persistence.utils import tenant_where
from app.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from app.infrastructure.cache.cache_protocol import CacheProtocol
    from app.infrastructure.persistence.client import DataClient
    from app.infrastructure.persistence.database import Database

logger = get_logger(__name__)

# Owned records that block archiving, checked in this order.
_BLOCKING_MODELS = (
    ("users", User),
    ("merch_products", MerchProduct),
    ("news_articles", NewsArticle),
    ("content", Content),
)


def _retry_store_errors_only(exc: BaseException) -> bool:
    return not isinstance(exc, CmsException)


class TenantService:
    """Tenant operations that span several models."""

    def __init__(self, database: Database, cache: CacheProtocol | None = None) -> None:
        self.database = database
        self.cache = cache

    async def count_active_records(self, client: DataClient, tenant_id: str) -> dict[str, int]:
        """Live (non-deleted) rows the tenant owns, per blocking model."""
        where = tenant_where(tenant_id)
        return {label: await client.count(model, where) for label, model in _BLOCKING_MODELS}

    async def archive_tenant(self, tenant_id: str) -> Tenant:
        """Mark the tenant ARCHIVED and set deleted_at, then drop its cache entries.

        Raises:
            TenantNotFoundException: No tenant with this id, or already archived.
            TenantHasActiveRecordsException: It still owns live users,
                products, news articles or content.
        """

        async def work(client: DataClient) -> Tenant:
            tenant = await client.find_one(Tenant, {"id": tenant_id})
            if tenant is None or tenant.deleted_at is not None:
                raise TenantNotFoundException(tenant_id)
            counts = await self.count_active_records(client, tenant_id)
            blocking = {label: count for label, count in counts.items() if count}
            if blocking:
                raise TenantHasActiveRecordsException(tenant_id, blocking)
            await client.update(Tenant, {"id": tenant_id}, {"status": TenantStatus.ARCHIVED.value})
            # Goes through the interceptor, which turns it into a deleted_at update.
            return await client.delete(Tenant, {"id": tenant_id})

        tenant = await self.database.transaction(work, is_retryable=_retry_store_errors_only)
        logger.info(
            "Archived tenant %s (%s)",
            tenant.slug,
            tenant.id,
            extra={"tenant_id": tenant.id},
        )
        if self.cache is not None:
            # The archive is committed; stale entries only expire later.
            try:
                await self.cache.invalidate_tenant(tenant_id)
            except Exception:
                logger.exception(
                    "Cache invalidation failed for archived tenant %s",
                    tenant_id,
                    extra={"tenant_id": tenant_id},
                )
        return tenant
