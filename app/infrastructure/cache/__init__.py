"""Cache: degraded-safe Redis client, JSON service, and key builders.

RedisCache owns the connection and never raises; CacheService layers JSON
and tenant/user namespacing on top. Key format lives in keys.py (DRY).
"""

from app.infrastructure.cache.cache_protocol import CacheProtocol
from app.infrastructure.cache.json_cache import CacheService, cached
from app.infrastructure.cache.keys import (
    tenant_key,
    tenant_pattern,
    user_key,
    user_pattern,
)
from app.infrastructure.cache.redis_cache import RedisCache

__all__ = [
    "CacheProtocol",
    "CacheService",
    "RedisCache",
    "cached",
    "tenant_key",
    "tenant_pattern",
    "user_key",
    "user_pattern",
]
