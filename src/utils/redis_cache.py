"""
Durable JSON key/value cache backed by Redis.

Values are JSON-serialised and stored under ``<prefix>:<key>`` with a per-key
TTL. Callers treat the cache as an accelerator: every operation raises
``CacheUnavailable`` when Redis cannot be reached so the caller can fall
through to the source of truth.
"""

import json
import os
from typing import Any, cast

from redis import Redis
from redis.exceptions import RedisError

from utils.get_logger import get_logger

logger = get_logger(__name__)

# Cache is disabled in test environment unless explicitly enabled
DISABLE_CACHE = (
    os.getenv("ENVIRONMENT", "").lower() == "test"
    and os.getenv("ENABLE_CACHE_FOR_TESTS", "").lower() != "1"
)


def disable_cache():
    global DISABLE_CACHE
    DISABLE_CACHE = True


class CacheUnavailable(Exception):
    """Raised when the backing store cannot serve a cache operation."""


# Singleton Redis client (synchronous)
_redis_client: Redis | None = None


def get_redis_client() -> Redis:
    """Singleton accessor for the synchronous Redis client."""
    global _redis_client
    if _redis_client is None:
        host = os.getenv("REDIS_HOST", "localhost")
        port_str = os.getenv("REDIS_PORT", "6379")
        password = os.getenv("REDIS_PASSWORD") or None

        try:
            port = int(port_str)
        except ValueError:
            raise RuntimeError(f"Invalid REDIS_PORT value: {port_str!r}")

        _redis_client = Redis(
            host=host,
            port=port,
            password=password,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
    return _redis_client


class RedisCache:
    """
    Redis-backed JSON cache using the SYNCHRONOUS Redis client.

    Redis round trips are ~1ms, so blocking inside async callers is acceptable
    and avoids event loop affinity problems with connection pools.
    """

    def __init__(
        self,
        defaultTTL: int = 3600,
        prefix: str = "catalogfeed",
        client: Redis | None = None,
    ) -> None:
        self._client = client
        self.defaultTTL = defaultTTL
        self.prefix = prefix

    @property
    def _redis(self) -> Redis:
        if self._client is None:
            self._client = get_redis_client()
        return self._client

    @property
    def enabled(self) -> bool:
        return not DISABLE_CACHE

    def _full_key(self, key: str) -> str:
        if self.prefix and not key.startswith(f"{self.prefix}:"):
            return f"{self.prefix}:{key}"
        return key

    def _unavailable(self, op: str, key: str, err: Exception) -> CacheUnavailable:
        error_msg = str(err)
        if "timeout" in error_msg.lower():
            logger.warning(
                f"Redis {op} timeout for {key}: {err}. "
                f"Host: {os.getenv('REDIS_HOST', 'localhost')}:{os.getenv('REDIS_PORT', '6379')}"
            )
        else:
            logger.warning(f"Redis {op} failed for {key}: {err}")
        return CacheUnavailable(f"{op} {key}: {err}")

    def get(self, key: str) -> Any | None:
        """Return the decoded value for ``key``, or None on a miss."""
        storage_key = self._full_key(key)
        try:
            raw = self._redis.get(storage_key)
        except RedisError as e:
            raise self._unavailable("get", storage_key, e) from e
        if raw is None:
            logger.debug(f"Redis miss: {storage_key}")
            return None
        try:
            return json.loads(cast(str, raw))
        except ValueError:
            logger.warning(f"Discarding undecodable cache entry {storage_key}")
            self.delete(key)
            return None

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        """Store ``value`` as JSON; a TTL <= 0 stores without expiry."""
        storage_key = self._full_key(key)
        ttl = self.defaultTTL if ttl_seconds is None else ttl_seconds
        payload = json.dumps(value, default=str)
        try:
            if ttl > 0:
                result = self._redis.set(storage_key, payload, ex=ttl)
            else:
                result = self._redis.set(storage_key, payload)
        except RedisError as e:
            raise self._unavailable("set", storage_key, e) from e
        logger.debug(f"Added to Redis: {storage_key} (ttl={ttl})")
        return bool(result)

    def delete(self, key: str) -> bool:
        storage_key = self._full_key(key)
        try:
            return cast(int, self._redis.delete(storage_key)) == 1
        except RedisError as e:
            raise self._unavailable("delete", storage_key, e) from e

    def exists(self, key: str) -> bool:
        storage_key = self._full_key(key)
        try:
            return cast(int, self._redis.exists(storage_key)) == 1
        except RedisError as e:
            raise self._unavailable("exists", storage_key, e) from e

    def ttl(self, key: str) -> int:
        """Remaining TTL in seconds (-1 no expiry, -2 missing)."""
        storage_key = self._full_key(key)
        try:
            return cast(int, self._redis.ttl(storage_key))
        except RedisError as e:
            raise self._unavailable("ttl", storage_key, e) from e

    def expire(self, key: str, ttl_seconds: int) -> bool:
        storage_key = self._full_key(key)
        try:
            return bool(self._redis.expire(storage_key, ttl_seconds))
        except RedisError as e:
            raise self._unavailable("expire", storage_key, e) from e

    def clear(self) -> int:
        """Delete every key under this cache's prefix. Returns the count deleted."""
        if not self.prefix:
            logger.warning("Clear called without prefix - skipping for safety")
            return 0

        pattern = f"{self.prefix}:*"
        deleted = 0
        try:
            cursor = 0
            while True:
                cursor, keys = cast(
                    tuple[int, list[str]],
                    self._redis.scan(cursor=cursor, match=pattern, count=100),
                )
                if keys:
                    deleted += cast(int, self._redis.delete(*keys))
                if cursor == 0:
                    break
        except RedisError as e:
            raise self._unavailable("clear", pattern, e) from e
        return deleted

    def close(self):
        if self._client is not None:
            self._client.close()
