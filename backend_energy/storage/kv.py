"""
Key-value store adapters.

The service only needs a handful of operations: get / set with expiry /
delete for JSON blobs, and lpush / ltrim / lrange / expire for the capped
rate-history list. Values are JSON strings on the wire.

Backends:
- RedisKVStore: redis.asyncio client (REDIS_URL=redis://...).
- MemoryKVStore: in-process dict with expiry, for REDIS_URL=memory (single
  process dev runs and tests). Not shared between processes.

Redis errors are re-raised as CacheStoreError so callers handle one type.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Protocol

import redis.asyncio as redis_asyncio
from redis.exceptions import RedisError

from backend_energy.config.env import MEMORY_REDIS_URL, mask_url
from backend_energy.core.exceptions import CacheStoreError
from backend_energy.energy_logging import get_logger

logger = get_logger(__name__)


class KVStore(Protocol):
    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any, ex: int | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def lpush(self, key: str, *values: Any) -> int: ...

    async def ltrim(self, key: str, start: int, stop: int) -> None: ...

    async def lrange(self, key: str, start: int, stop: int) -> list[Any]: ...

    async def expire(self, key: str, seconds: int) -> None: ...

    async def close(self) -> None: ...


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def _loads(raw: Any) -> Any:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise CacheStoreError(f"Stored value is not valid JSON: {e}") from e


def _slice_bounds(length: int, start: int, stop: int) -> tuple[int, int]:
    """Redis-style inclusive [start, stop] with negative indexes -> python slice bounds."""
    if start < 0:
        start = max(length + start, 0)
    if stop < 0:
        stop = length + stop
    return start, min(stop, length - 1) + 1


class RedisKVStore:
    """redis.asyncio-backed store."""

    def __init__(self, url: str, client: Any = None):
        self.url = url
        self.client = client or redis_asyncio.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=5,
        )

    async def get(self, key: str) -> Any:
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            raise CacheStoreError(f"GET {key} failed: {e}") from e
        return _loads(raw)

    async def set(self, key: str, value: Any, ex: int | None = None) -> None:
        try:
            await self.client.set(key, _dumps(value), ex=ex)
        except RedisError as e:
            raise CacheStoreError(f"SET {key} failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as e:
            raise CacheStoreError(f"DEL {key} failed: {e}") from e

    async def lpush(self, key: str, *values: Any) -> int:
        try:
            return int(await self.client.lpush(key, *[_dumps(v) for v in values]))
        except RedisError as e:
            raise CacheStoreError(f"LPUSH {key} failed: {e}") from e

    async def ltrim(self, key: str, start: int, stop: int) -> None:
        try:
            await self.client.ltrim(key, start, stop)
        except RedisError as e:
            raise CacheStoreError(f"LTRIM {key} failed: {e}") from e

    async def lrange(self, key: str, start: int, stop: int) -> list[Any]:
        try:
            raw_items = await self.client.lrange(key, start, stop)
        except RedisError as e:
            raise CacheStoreError(f"LRANGE {key} failed: {e}") from e
        return [_loads(item) for item in raw_items]

    async def expire(self, key: str, seconds: int) -> None:
        try:
            await self.client.expire(key, seconds)
        except RedisError as e:
            raise CacheStoreError(f"EXPIRE {key} failed: {e}") from e

    async def close(self) -> None:
        await self.client.aclose()


class MemoryKVStore:
    """
    In-process store with the same semantics (JSON round trip, expiry, lists).

    ``clock`` returns seconds; injectable so tests can step past a TTL.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._values: dict[str, str] = {}
        self._lists: dict[str, list[str]] = {}
        self._expiry: dict[str, float] = {}

    def _purge(self, key: str) -> None:
        deadline = self._expiry.get(key)
        if deadline is not None and self.clock() >= deadline:
            self._values.pop(key, None)
            self._lists.pop(key, None)
            self._expiry.pop(key, None)

    async def get(self, key: str) -> Any:
        self._purge(key)
        return _loads(self._values.get(key))

    async def set(self, key: str, value: Any, ex: int | None = None) -> None:
        self._values[key] = _dumps(value)
        self._lists.pop(key, None)
        if ex:
            self._expiry[key] = self.clock() + ex
        else:
            self._expiry.pop(key, None)

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._lists.pop(key, None)
        self._expiry.pop(key, None)

    async def lpush(self, key: str, *values: Any) -> int:
        self._purge(key)
        items = self._lists.setdefault(key, [])
        for value in values:
            items.insert(0, _dumps(value))
        return len(items)

    async def ltrim(self, key: str, start: int, stop: int) -> None:
        self._purge(key)
        items = self._lists.get(key)
        if items is None:
            return
        lo, hi = _slice_bounds(len(items), start, stop)
        self._lists[key] = items[lo:hi]

    async def lrange(self, key: str, start: int, stop: int) -> list[Any]:
        self._purge(key)
        items = self._lists.get(key) or []
        lo, hi = _slice_bounds(len(items), start, stop)
        return [_loads(item) for item in items[lo:hi]]

    async def expire(self, key: str, seconds: int) -> None:
        if key in self._values or key in self._lists:
            self._expiry[key] = self.clock() + seconds

    async def close(self) -> None:
        return None


def create_kv_store(url: str) -> KVStore:
    """Build a store from REDIS_URL; "memory" selects the in-process backend."""
    if url.strip().lower() == MEMORY_REDIS_URL:
        logger.info("kv_store_backend", backend="memory")
        return MemoryKVStore()
    logger.info("kv_store_backend", backend="redis", url=mask_url(url))
    return RedisKVStore(url)
