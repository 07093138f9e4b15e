"""TTL caches for data fetched from the backend.

Both implementations share the async ``get``/``set`` interface so the data
feeds can take either one. Expiry is checked on read.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as redis


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class Cache(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: float = DEFAULT_TTL_SECONDS) -> None: ...

    async def invalidate(self, key: str) -> None: ...


class MemoryCache:
    """In-process cache; pass ``clock`` to control time in tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Any | None:
        entry = self.entry(key)
        return None if entry is None else entry.value

    async def set(self, key: str, value: Any, ttl: float = DEFAULT_TTL_SECONDS) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), ttl=ttl)

    async def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)


class RedisCache:
    """Cache stored in Redis as JSON, expiry handled by the server."""

    def __init__(self, client: redis.Redis, prefix: str = "dashboard:cache:") -> None:
        self._client = client
        self._prefix = prefix

    async def get(self, key: str) -> Any | None:
        raw = await self._client.get(self._prefix + key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Dropping undecodable cache entry %s", key)
            await self.invalidate(key)
            return None

    async def set(self, key: str, value: Any, ttl: float = DEFAULT_TTL_SECONDS) -> None:
        await self._client.set(
            self._prefix + key,
            json.dumps(value, default=str),
            px=int(ttl * 1000),
        )

    async def invalidate(self, key: str) -> None:
        await self._client.delete(self._prefix + key)
