"""Tests for CacheService JSON helpers, tenant invalidation and cached()."""

from unittest.mock import AsyncMock

from app.infrastructure.cache.json_cache import CacheService, cached
from app.infrastructure.cache.keys import tenant_key
from app.infrastructure.cache.redis_cache import RedisCache


async def test_json_round_trip(cache_service: CacheService) -> None:
    """Dicts and lists are stored as JSON and decoded on read."""
    value = {"title": "About", "tags": ["a", "b"], "views": 3}

    assert await cache_service.set_json("tenant:t1:content:about", value) is True
    assert await cache_service.get_json("tenant:t1:content:about") == value


async def test_get_json_miss_is_none(cache_service: CacheService) -> None:
    assert await cache_service.get_json("tenant:t1:nothing") is None


async def test_get_json_bad_payload_is_none(
    cache_service: CacheService, redis_cache: RedisCache
) -> None:
    """A value that is not JSON reads as a miss."""
    await redis_cache.set("tenant:t1:broken", "{not json")

    assert await cache_service.get_json("tenant:t1:broken") is None


async def test_set_json_unserializable_is_false(cache_service: CacheService) -> None:
    assert await cache_service.set_json("tenant:t1:obj", object()) is False


async def test_default_ttl_applies(redis_cache: RedisCache, fake_redis) -> None:
    """default_ttl is used when set_json gets no TTL."""
    service = CacheService(redis_cache, default_ttl=120)

    await service.set_json("tenant:t1:list", [1, 2])

    assert 0 < await fake_redis.ttl("tenant:t1:list") <= 120


async def test_invalidate_tenant_leaves_other_tenants(cache_service: CacheService) -> None:
    """Only tenant:<id>:* entries are removed."""
    await cache_service.set_json(cache_service.tenant_key("t1", "news:list"), [1])
    await cache_service.set_json(cache_service.tenant_key("t1", "config"), {"a": 1})
    await cache_service.set_json(cache_service.tenant_key("t2", "config"), {"a": 2})
    await cache_service.set_json(cache_service.user_key("u1", "profile"), {"n": "x"})

    assert await cache_service.invalidate_tenant("t1") == 2

    assert await cache_service.get_json("tenant:t2:config") == {"a": 2}
    assert await cache_service.get_json("user:u1:profile") == {"n": "x"}


async def test_invalidate_user(cache_service: CacheService) -> None:
    await cache_service.set_json(cache_service.user_key("u1", "profile"), {"n": "x"})
    await cache_service.set_json(cache_service.user_key("u2", "profile"), {"n": "y"})

    assert await cache_service.invalidate_user("u1") == 1
    assert await cache_service.get_json("user:u2:profile") == {"n": "y"}


async def test_cached_reads_through(cache_service: CacheService) -> None:
    """The wrapped function runs once; the second call is served from the cache."""
    loader = AsyncMock(return_value={"slug": "about"})

    @cached(lambda tenant_id, slug: tenant_key(tenant_id, f"content:{slug}"), ttl=60)
    async def get_page(tenant_id: str, slug: str, *, cache: CacheService) -> dict:
        return await loader(tenant_id, slug)

    first = await get_page("t1", "about", cache=cache_service)
    second = await get_page("t1", "about", cache=cache_service)

    assert first == second == {"slug": "about"}
    loader.assert_awaited_once_with("t1", "about")


async def test_cached_uses_instance_cache_attribute(cache_service: CacheService) -> None:
    """A method finds the CacheService on self.cache."""

    class NewsReader:
        def __init__(self, cache: CacheService) -> None:
            self.cache = cache
            self.calls = 0

        @cached(lambda tenant_id: tenant_key(tenant_id, "news:latest"))
        async def latest(self, tenant_id: str) -> list[str]:
            self.calls += 1
            return ["n1"]

    reader = NewsReader(cache_service)
    await reader.latest("t1")
    await reader.latest("t1")

    assert reader.calls == 1


async def test_cached_does_not_store_none(cache_service: CacheService) -> None:
    loader = AsyncMock(return_value=None)

    @cached(lambda key: tenant_key("t1", key))
    async def lookup(key: str, *, cache: CacheService) -> None:
        return await loader(key)

    await lookup("x", cache=cache_service)
    await lookup("x", cache=cache_service)

    assert loader.await_count == 2


async def test_cached_without_cache_just_runs() -> None:
    @cached(lambda key: tenant_key("t1", key))
    async def lookup(key: str) -> str:
        return key.upper()

    assert await lookup("x") == "X"


async def test_cache_outage_falls_back_to_loader(settings) -> None:
    """With Redis unusable the decorated function still returns fresh data."""
    service = CacheService(RedisCache(settings=settings))
    loader = AsyncMock(return_value={"v": 1})

    @cached(lambda key: tenant_key("t1", key))
    async def lookup(key: str, *, cache: CacheService) -> dict:
        return await loader(key)

    assert await lookup("x", cache=service) == {"v": 1}
    assert await lookup("x", cache=service) == {"v": 1}
    assert loader.await_count == 2


async def test_invalidate_with_empty_id_is_zero(cache_service: CacheService) -> None:
    """An unusable owner id is logged and reported as nothing removed."""
    await cache_service.set_json(cache_service.tenant_key("t1", "config"), {"a": 1})

    assert await cache_service.invalidate_tenant("") == 0
    assert await cache_service.invalidate_user("") == 0
    assert await cache_service.get_json("tenant:t1:config") == {"a": 1}
