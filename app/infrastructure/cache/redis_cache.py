"""Redis client wrapper with graceful degradation.

Every command goes through RedisCache._call: when Redis is unreachable,
times out, or rejects a command, the error is logged and the caller gets a
safe default (None / False / 0). Nothing raised by redis-py escapes this
module, so a dead cache only ever turns into cache misses.

Reconnection is bounded and serialized. One reconnect attempt is in flight
at a time, and after a failed attempt the next one waits reconnect_delay_ms.
Commands arriving meanwhile degrade without using up an attempt. After
settings.redis_max_reconnect_attempts consecutive failed attempts the client
gives up for the rest of the process lifetime.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis

from app.core.config import Settings, get_settings
from app.core.constants import CACHE_DELETE_CHUNK_SIZE

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

Sleep = Callable[[float], Awaitable[None]]


def reconnect_delay_ms(attempt: int) -> int:
    """Delay before reconnect attempt `attempt + 1`: 50ms per attempt, capped at 2s."""
    return min(attempt * 50, 2000)


class RedisCache:
    """Async Redis client with bounded reconnection and safe-default commands.

    Values are plain strings (decode_responses=True); JSON handling lives in
    CacheService. Create one instance per process, call connect() at
    startup and disconnect() at shutdown.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the wrapper.

        Args:
            redis_client: Optional pre-built client (tests, DI). Built from
                settings.redis_url on connect() when omitted.
            settings: Settings to read connection options from.
            sleep: Awaitable sleep used between connect attempts.
            clock: Monotonic clock (seconds) for the backoff window between
                reconnects triggered by failing commands.
        """
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._sleep = sleep
        self._clock = clock
        self._connected = False
        self._reconnect_attempts = 0
        self._next_attempt_at = 0.0
        self._reconnect_lock = asyncio.Lock()
        self._gave_up = False

    @property
    def max_reconnect_attempts(self) -> int:
        return self.settings.redis_max_reconnect_attempts

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def permanently_disconnected(self) -> bool:
        """True once the reconnect cap was hit; no further attempts are made."""
        return self._gave_up

    def _build_client(self) -> redis.Redis:
        password = self.settings.redis_password
        return redis.Redis.from_url(
            self.settings.redis_url,
            db=self.settings.redis_db,
            password=password.get_secret_value() if password else None,
            decode_responses=True,
            socket_connect_timeout=self.settings.redis_command_timeout_seconds,
            socket_timeout=self.settings.redis_command_timeout_seconds,
            socket_keepalive=True,
        )

    def _mark_connected(self) -> None:
        if not self._connected:
            logger.info("Redis connection established")
        self._connected = True
        self._reconnect_attempts = 0
        self._next_attempt_at = 0.0

    async def _attempt_connect(self) -> bool:
        """Ping once; on failure count the attempt and give up at the cap."""
        if self._gave_up:
            return False
        if self.redis is None:
            self.redis = self._build_client()
        try:
            await self.redis.ping()
        except redis.RedisError as e:
            self._connected = False
            self._reconnect_attempts += 1
            self._next_attempt_at = (
                self._clock() + reconnect_delay_ms(self._reconnect_attempts) / 1000
            )
            logger.error(
                "Redis connection attempt %d/%d failed: %s",
                self._reconnect_attempts,
                self.max_reconnect_attempts,
                e,
            )
            if self._reconnect_attempts >= self.max_reconnect_attempts:
                self._gave_up = True
                logger.error(
                    "Max Redis reconnection attempts reached (%d); cache disabled",
                    self.max_reconnect_attempts,
                )
            return False
        self._mark_connected()
        return True

    async def connect(self) -> bool:
        """Connect, retrying with backoff until connected or the cap is reached.

        Returns:
            True when connected, False when Redis is (now) permanently disabled.
        """
        async with self._reconnect_lock:
            while not self._gave_up:
                if await self._attempt_connect():
                    return True
                if self._gave_up:
                    break
                delay = reconnect_delay_ms(self._reconnect_attempts)
                logger.info(
                    "Redis reconnecting in %dms (attempt %d)",
                    delay,
                    self._reconnect_attempts + 1,
                )
                await self._sleep(delay / 1000)
        return False

    async def _reconnect(self) -> bool:
        """Make one reconnect attempt for a failing command.

        Returns False without counting an attempt while another reconnect is
        in flight or before the backoff delay of the last failure has passed.
        """
        if self._gave_up or self.redis is None:
            return False
        if self._reconnect_lock.locked() or self._clock() < self._next_attempt_at:
            return False
        async with self._reconnect_lock:
            if self._connected:
                return True
            return await self._attempt_connect()

    async def disconnect(self) -> None:
        """Close the connection pool. Call on app shutdown."""
        if self.redis is not None:
            logger.info("Disconnecting from Redis")
            try:
                await self.redis.aclose()
            except redis.RedisError as e:
                logger.error("Error while closing Redis connection: %s", e)
            self.redis = None
        self._connected = False

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None and not self._gave_up

    async def _call(
        self,
        operation: str,
        command: Callable[[redis.Redis], Awaitable[_T]],
        default: _T,
        **context: Any,
    ) -> _T:
        """Run one command, degrading to default on any Redis failure.

        A connection or timeout error marks the client disconnected and asks
        for a reconnect; if that succeeds the command is retried once. While
        disconnected, commands degrade until a reconnect attempt is allowed.
        """
        if not self.is_available():
            if not await self._reconnect():
                logger.warning(
                    "Redis not available for %s operation", operation, extra=context
                )
                return default
        try:
            return await command(self.redis)
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.error("Redis %s operation failed: %s", operation, e, extra=context)
            self._connected = False
            if await self._reconnect():
                try:
                    return await command(self.redis)
                except redis.RedisError as retry_error:
                    logger.error(
                        "Redis %s operation failed after reconnect: %s",
                        operation,
                        retry_error,
                        extra=context,
                    )
            return default
        except redis.RedisError as e:
            logger.error("Redis %s operation failed: %s", operation, e, extra=context)
            return default

    async def ping(self) -> bool:
        """Liveness probe for the health check. Never raises.

        A successful ping while disconnected restores the client.
        """
        if self.redis is None or self._gave_up:
            return False
        try:
            alive = bool(await self.redis.ping())
        except redis.RedisError as e:
            logger.error("Redis ping failed: %s", e)
            return False
        if alive:
            self._mark_connected()
        return alive

    async def get(self, key: str) -> str | None:
        """Return the stored string, or None if absent or Redis is unusable."""

        async def command(client: redis.Redis) -> str | None:
            value = await client.get(key)
            logger.debug("Cache GET: %s (hit=%s)", key, value is not None)
            return value

        return await self._call("GET", command, None, key=key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        """Store value; expire after ttl_seconds when given, else keep until deleted.

        A TTL of 0 (or None) means no expiry.

        Returns:
            True if Redis acknowledged the write, False otherwise.
        """

        async def command(client: redis.Redis) -> bool:
            if ttl_seconds:
                result = await client.setex(key, ttl_seconds, value)
            else:
                result = await client.set(key, value)
            logger.debug("Cache SET: %s (TTL: %ss)", key, ttl_seconds)
            return bool(result)

        return await self._call("SET", command, False, key=key)

    async def delete(self, key: str) -> int:
        """Remove key. Returns the number of keys removed (0 or 1)."""

        async def command(client: redis.Redis) -> int:
            return int(await client.delete(key))

        return await self._call("DEL", command, 0, key=key)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern.

        Matching keys are enumerated with SCAN first (KEYS would block the
        server), then UNLINKed in chunks. An empty match returns 0.

        Args:
            pattern: Redis glob (e.g. tenant:t1:*).

        Returns:
            Number of keys deleted.
        """

        async def command(client: redis.Redis) -> int:
            keys = [key async for key in client.scan_iter(match=pattern)]
            if not keys:
                return 0
            deleted = 0
            for start in range(0, len(keys), CACHE_DELETE_CHUNK_SIZE):
                deleted += int(
                    await client.unlink(*keys[start : start + CACHE_DELETE_CHUNK_SIZE])
                )
            logger.info("Cache INVALIDATE: %s (%s keys)", pattern, deleted)
            return deleted

        return await self._call("pattern delete", command, 0, pattern=pattern)

    async def exists(self, key: str) -> bool:
        async def command(client: redis.Redis) -> bool:
            return int(await client.exists(key)) == 1

        return await self._call("EXISTS", command, False, key=key)

    async def expire(self, key: str, seconds: int) -> bool:
        """Set a TTL on an existing key. False if the key does not exist."""

        async def command(client: redis.Redis) -> bool:
            return bool(await client.expire(key, seconds))

        return await self._call("EXPIRE", command, False, key=key, seconds=seconds)

    async def increment(self, key: str) -> int | None:
        """INCR key; returns the new value, or None on failure."""

        async def command(client: redis.Redis) -> int:
            return int(await client.incr(key))

        return await self._call("INCR", command, None, key=key)
