"""
Injected cache/store abstraction.

Request-scoped code never keeps module-level dicts for lookup caching; it
receives a CacheStore instead. Two backends:

- MemoryCacheStore: bounded LRU with per-entry TTL (single process, tests)
- RedisCacheStore: shared across workers, TTL enforced by Redis
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Protocol

from casefile.core.config import settings

logger = logging.getLogger(__name__)

REDIS_DISABLED_URL = "memory://"
REDIS_CONNECT_TIMEOUT_SECONDS = 2.0
REDIS_SOCKET_TIMEOUT_SECONDS = 2.0
REDIS_HEALTH_CHECK_SECONDS = 30
REDIS_MAX_CONNECTIONS = 20


class CacheStore(Protocol):
    """Minimal key/value contract shared by all cache backends."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None: ...

    def delete(self, key: str) -> None: ...


# =============================================================================
# In-memory backend
# =============================================================================


class MemoryCacheStore:
    """
    Bounded LRU cache with per-entry expiry.

    Eviction policy: expired entries are dropped on access and during
    writes; when the store is full the least recently used entry goes.
    """

    def __init__(
        self,
        max_entries: int = 1024,
        default_ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[Any, float | None]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    def _expires_at(self, ttl_seconds: float | None) -> float | None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        if ttl is None:
            return None
        return self._clock() + ttl

    def _is_expired(self, expires_at: float | None) -> bool:
        return expires_at is not None and expires_at <= self._clock()

    def _purge_expired(self) -> None:
        expired = [k for k, (_, exp) in self._entries.items() if self._is_expired(exp)]
        for key in expired:
            del self._entries[key]

    def _store(self, key: str, value: Any, expires_at: float | None) -> None:
        self._entries[key] = (value, expires_at)
        self._entries.move_to_end(key)
        if len(self._entries) > self.max_entries:
            self._purge_expired()
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._is_expired(expires_at):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        with self._lock:
            self._store(key, value, self._expires_at(ttl_seconds))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


# =============================================================================
# Redis backend
# =============================================================================


class RedisCacheStore:
    """Redis-backed store; values are JSON encoded under a key prefix."""

    def __init__(
        self,
        client,
        prefix: str = "casefile:",
        default_ttl_seconds: float | None = None,
    ):
        self._client = client
        self.prefix = prefix
        self.default_ttl_seconds = default_ttl_seconds

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Any | None:
        raw = self._client.get(self._key(key))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        payload = json.dumps(value, default=str)
        if ttl is None:
            self._client.set(self._key(key), payload)
        else:
            self._client.set(self._key(key), payload, ex=max(1, int(ttl)))

    def delete(self, key: str) -> None:
        self._client.delete(self._key(key))


def _redis_url() -> str | None:
    url = settings.REDIS_URL.strip()
    if not url or url.lower() == REDIS_DISABLED_URL:
        return None
    return url


def _connect_redis(url: str):
    import redis

    pool = redis.ConnectionPool.from_url(
        url,
        max_connections=REDIS_MAX_CONNECTIONS,
        socket_connect_timeout=REDIS_CONNECT_TIMEOUT_SECONDS,
        socket_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
        health_check_interval=REDIS_HEALTH_CHECK_SECONDS,
        retry_on_timeout=True,
    )
    client = redis.Redis(connection_pool=pool)
    client.ping()
    return client


def build_cache_store() -> CacheStore:
    """Build the configured cache store, falling back to memory if Redis is down."""
    url = _redis_url()
    if url:
        try:
            client = _connect_redis(url)
            return RedisCacheStore(
                client,
                prefix=settings.CACHE_KEY_PREFIX,
                default_ttl_seconds=settings.CACHE_DEFAULT_TTL_SECONDS,
            )
        except Exception as e:
            logger.warning(f"Redis unavailable for cache store, using in-memory: {e}")
    return MemoryCacheStore(
        max_entries=settings.CACHE_MAX_ENTRIES,
        default_ttl_seconds=settings.CACHE_DEFAULT_TTL_SECONDS,
    )
