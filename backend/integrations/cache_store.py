"""Key-value cache store backends.

The item registry and the snapshot cache persist JSON strings through
the small :class:`CacheStore` interface. Production uses Redis; tests
and local development can use the in-process store. Which one is used
is decided once by :func:`get_cache_store` from ``CACHE_BACKEND``.
"""

import logging
import threading
import time
from functools import lru_cache
from typing import Protocol

import redis

from config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "plaid"


def user_key(user_id: str, name: str) -> str:
    """Build the per-user key for one stored value, e.g. ``plaid:u1:items``."""
    return f"{KEY_PREFIX}:{user_id}:{name}"


class CacheStore(Protocol):
    """Minimal get / set-with-expiry / delete / ttl contract."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Store ``value``; ``ttl_seconds=None`` means no expiry."""
        ...

    def delete(self, *keys: str) -> None:
        ...

    def ttl(self, key: str) -> float | None:
        """Seconds until ``key`` expires, or None if absent or persistent."""
        ...


class RedisCacheStore:
    """CacheStore backed by a Redis server."""

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> str | None:
        return self._client.get(key)

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        if ttl_seconds is not None:
            self._client.set(key, value, ex=ttl_seconds)
        else:
            self._client.set(key, value)

    def delete(self, *keys: str) -> None:
        if keys:
            self._client.delete(*keys)

    def ttl(self, key: str) -> float | None:
        # Redis answers -2 for a missing key and -1 for one without expiry
        remaining = self._client.ttl(key)
        if remaining is None or remaining < 0:
            return None
        return float(remaining)


class InMemoryCacheStore:
    """Process-local CacheStore with per-key expiry.

    Expired entries are dropped lazily on read.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        with self._lock:
            self._data[key] = (value, expires_at)

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def ttl(self, key: str) -> float | None:
        """Seconds until ``key`` expires, or None if absent or persistent."""
        with self._lock:
            entry = self._data.get(key)
        if entry is None or entry[1] is None:
            return None
        remaining = entry[1] - self._clock()
        return remaining if remaining > 0 else None


@lru_cache
def get_cache_store() -> CacheStore:
    """Get or create the configured cache store (cached)."""
    if settings.CACHE_BACKEND == "memory":
        logger.info("Using in-process cache store")
        return InMemoryCacheStore()
    logger.info("Using Redis cache store")
    return RedisCacheStore.from_url(settings.REDIS_URL)
