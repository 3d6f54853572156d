"""JSON cache service on top of RedisCache.

Adds transparent JSON (de)serialization, tenant/user key namespacing, and
group invalidation by pattern delete. Inherits RedisCache's contract: no
method raises because of the cache; failures become None / False / 0.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from app.infrastructure.cache import keys
from app.infrastructure.cache.redis_cache import RedisCache

logger = logging.getLogger(__name__)


class CacheService:
    """Typed JSON access and tenant/user scoped invalidation.

    Group invalidation is pattern-based only (tenant:<id>:* and
    user:<id>:*); there is no tag index.
    """

    def __init__(self, client: RedisCache, default_ttl: int | None = None) -> None:
        """Initialize with the process RedisCache.

        Args:
            client: Connected (or degraded) RedisCache instance.
            default_ttl: TTL applied by set_json when the caller passes none.
                None keeps entries until deleted or evicted.
        """
        self.client = client
        self.default_ttl = default_ttl

    async def get_json(self, key: str) -> Any | None:
        """Return the decoded value, or None on miss, outage or bad JSON."""
        raw = await self.client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.error("Cache JSON parse error for key %s", key, exc_info=True)
            return None

    async def set_json(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        """Encode value as JSON and store it. False if encoding or the write fails."""
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError):
            logger.error("Cache JSON serialize error for key %s", key, exc_info=True)
            return False
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        return await self.client.set(key, serialized, ttl)

    async def delete(self, key: str) -> int:
        return await self.client.delete(key)

    def tenant_key(self, tenant_id: str, suffix: str) -> str:
        return keys.tenant_key(tenant_id, suffix)

    def user_key(self, user_id: str, suffix: str) -> str:
        return keys.user_key(user_id, suffix)

    async def invalidate_tenant(self, tenant_id: str) -> int:
        """Delete every tenant:<tenant_id>:* entry. Returns keys removed (0 for an empty id)."""
        return await self._invalidate(keys.tenant_pattern, tenant_id)

    async def invalidate_user(self, user_id: str) -> int:
        """Delete every user:<user_id>:* entry. Returns keys removed (0 for an empty id)."""
        return await self._invalidate(keys.user_pattern, user_id)

    async def _invalidate(self, pattern_for: Callable[[str], str], owner_id: str) -> int:
        try:
            pattern = pattern_for(owner_id)
        except ValueError as e:
            logger.error("Cache invalidation skipped: %s", e)
            return 0
        return await self.client.delete_pattern(pattern)


def _resolve_cache(
    args: tuple[Any, ...], kwargs: dict[str, Any]
) -> tuple[CacheService | None, tuple[Any, ...], dict[str, Any]]:
    """Find the CacheService for a cached() call.

    Resolution order: keyword "cache", then args[0].cache. The keyword is
    removed from the kwargs passed to the key builder but still forwarded
    to the wrapped function.
    """
    cache = kwargs.get("cache")
    if isinstance(cache, CacheService):
        return cache, args, {k: v for k, v in kwargs.items() if k != "cache"}
    if args:
        cache_attr = getattr(args[0], "cache", None)
        if isinstance(cache_attr, CacheService):
            return cache_attr, args[1:], kwargs
    return None, args, kwargs


def cached(
    key_builder: Callable[..., str],
    ttl: int | None = 300,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Read-through cache for async functions returning JSON-serializable data.

    The wrapped function receives the CacheService either as keyword
    "cache" or as the .cache attribute of its first argument (e.g. a
    service instance). Without one, the function just runs. None results
    are not cached.

    Args:
        key_builder: Called with the remaining args/kwargs; usually wraps
            keys.tenant_key or keys.user_key.
        ttl: Time-to-live in seconds (None keeps entries until invalidated).

    Example:
        @cached(lambda tenant_id, slug: tenant_key(tenant_id, f"content:{slug}"))
        async def get_page(tenant_id: str, slug: str, *, cache: CacheService): ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            cache, key_args, key_kwargs = _resolve_cache(args, kwargs)
            if cache is None:
                return await func(*args, **kwargs)
            cache_key = key_builder(*key_args, **key_kwargs)
            hit = await cache.get_json(cache_key)
            if hit is not None:
                return hit
            result = await func(*args, **kwargs)
            if result is not None:
                await cache.set_json(cache_key, result, ttl)
            return result

        return wrapper

    return decorator
