"""
Key-Value Store for Sessions and Token Revocation

Server-side session records and revoked token ids live in a small
key-value store with per-key TTLs. Two interchangeable backends:

- RedisKeyValueStore: redis.asyncio, atomic SET EX / GET / DELETE per key
- InMemoryKeyValueStore: single-process dict behind an asyncio.Lock,
  expired keys dropped lazily on read

Key Patterns:
    - session:{sid} - session record (JSON)
    - revoked:{jti} - revoked token marker

Usage:
    store = get_store()
    await store.set_json("session:abc", {"user_id": 1}, ttl=3600)
    record = await store.get_json("session:abc")
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional, Protocol, Tuple

import redis.asyncio as redis

from jobtracker.config import get_settings

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Protocol for session store backends."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl: int) -> None:
        ...

    async def delete(self, key: str) -> bool:
        ...

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    async def set_json(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        ...

    async def close(self) -> None:
        ...


class JSONStoreMixin:
    """JSON helpers shared by the store backends."""

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding corrupt store entry: {key}")
            await self.delete(key)
            return None

    async def set_json(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        await self.set(key, json.dumps(value, default=str), ttl)


class InMemoryKeyValueStore(JSONStoreMixin):
    """
    In-process store for development and tests.

    All mutations go through one asyncio.Lock, so concurrent requests on
    the same event loop never interleave inside a read-modify-write.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= time.monotonic():
                del self._data[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        async with self._lock:
            self._data[key] = (value, time.monotonic() + ttl)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._data.pop(key, None) is not None

    async def close(self) -> None:
        async with self._lock:
            self._data.clear()


class RedisKeyValueStore(JSONStoreMixin):
    """
    Redis-backed store shared by every API worker.

    Attributes:
        redis_url: Redis connection URL (e.g., redis://localhost:6379)
        redis: Lazily created async client
    """

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.redis: Optional[redis.Redis] = None

    def _client(self) -> redis.Redis:
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self.redis

    async def get(self, key: str) -> Optional[str]:
        return await self._client().get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self._client().set(key, value, ex=max(int(ttl), 1))

    async def delete(self, key: str) -> bool:
        return await self._client().delete(key) > 0

    async def health_check(self) -> bool:
        try:
            await self._client().ping()
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        if self.redis:
            await self.redis.close()
            self.redis = None


# ==================== Factory Function ====================

_store_instance: Optional[KeyValueStore] = None


def get_store() -> KeyValueStore:
    """
    Get or create the process-wide store selected by `session_backend`.

    Returns:
        RedisKeyValueStore or InMemoryKeyValueStore
    """
    global _store_instance

    if _store_instance is None:
        settings = get_settings()
        if settings.session_backend == "redis":
            _store_instance = RedisKeyValueStore(redis_url=settings.redis_url)
        else:
            _store_instance = InMemoryKeyValueStore()
        logger.info(f"Session store backend: {settings.session_backend}")

    return _store_instance


async def close_store() -> None:
    global _store_instance

    if _store_instance is not None:
        await _store_instance.close()
        _store_instance = None
