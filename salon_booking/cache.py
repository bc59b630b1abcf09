"""TTL key-value cache for catalogue reads (services, weekly availability).

The cache is created once per application and handed to the functions that
read or write the cached entities; writers call ``invalidate`` for every key
their change affects.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

SERVICES_ACTIVE = "services:active"
SERVICES_ALL = "services:all"
AVAILABILITY_ACTIVE = "availability:active"
WORKING_DAYS = "availability:working_days"


def service_key(service_id: int) -> str:
    return f"service:{service_id}"


class MemoryBackend:
    """Process-local backend; entries expire lazily on read."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (time.monotonic() + ttl, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisBackend:
    """Shared backend for multi-process deployments; values are stored as JSON."""

    def __init__(self, client: "redis.Redis", prefix: str = "salon:") -> None:
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisBackend":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[Any]:
        raw = self.client.get(self.prefix + key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any, ttl: int) -> None:
        self.client.setex(self.prefix + key, ttl, json.dumps(value))

    def delete(self, key: str) -> None:
        self.client.delete(self.prefix + key)

    def clear(self) -> None:
        keys = list(self.client.scan_iter(match=self.prefix + "*"))
        if keys:
            self.client.delete(*keys)


class TTLCache:
    def __init__(self, backend=None, default_ttl: int = 300) -> None:
        self.backend = backend or MemoryBackend()
        self.default_ttl = default_ttl

    def init_app(self, app) -> None:
        self.default_ttl = app.config.get("SERVICE_CACHE_TTL", self.default_ttl)
        url = app.config.get("CACHE_REDIS_URL")
        self.backend = RedisBackend.from_url(url) if url else MemoryBackend()
        app.extensions["salon_cache"] = self

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self.backend.get(key)
        except redis.RedisError as exc:
            # a broken cache must not break reads; fall through to the database
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        logger.debug("Cache %s: %s", "HIT" if value is not None else "MISS", key)
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            self.backend.set(key, value, ttl or self.default_ttl)
        except redis.RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    def invalidate(self, *keys: str) -> None:
        for key in keys:
            try:
                self.backend.delete(key)
            except redis.RedisError as exc:
                # entry stays until its TTL runs out
                logger.error("Cache invalidation failed for %s: %s", key, exc)
        logger.debug("Cache invalidated: %s", ", ".join(keys))

    def clear(self) -> None:
        try:
            self.backend.clear()
        except redis.RedisError as exc:
            logger.error("Cache clear failed: %s", exc)
