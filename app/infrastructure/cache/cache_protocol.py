"""Cache protocol for consumers that only need JSON get/set/invalidate (DIP)."""

from typing import Any, Protocol


class CacheProtocol(Protocol):
    """Structural type satisfied by CacheService (and test doubles)."""

    async def get_json(self, key: str) -> Any | None:
        """Return cached value or None."""
        ...

    async def set_json(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        """Store value with optional TTL in seconds."""
        ...

    async def invalidate_tenant(self, tenant_id: str) -> int:
        """Remove every entry namespaced under the tenant."""
        ...
