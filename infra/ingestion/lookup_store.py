"""Async TTL cache with single-flight loading.

Used for the source-API session cookies and for id → name directories
(employees, suppliers).  Concurrent callers that find an expired entry await
the same in-flight load instead of issuing their own.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import time
from typing import Awaitable, Callable, Dict, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Loader = Callable[[K], Awaitable[V]]
Clock = Callable[[], float]


@dataclass
class _CachedValue(Generic[V]):
    value: V
    expires_at: float


class LookupStore(Generic[K, V]):
    """Key/value cache whose misses are filled by an async loader."""

    def __init__(
        self,
        loader: Loader,
        *,
        ttl_seconds: float,
        clock: Clock | None = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._loader = loader
        self._ttl = float(ttl_seconds)
        self._clock = clock or time.monotonic
        self._values: Dict[K, _CachedValue[V]] = {}
        self._inflight: Dict[K, asyncio.Future] = {}
        self._lock = asyncio.Lock()
        self.loads = 0

    async def get(self, key: K) -> V:
        """Return the cached value for *key*, loading it once when missing or stale."""

        async with self._lock:
            cached = self._values.get(key)
            if cached is not None and cached.expires_at > self._clock():
                return cached.value
            future = self._inflight.get(key)
            owner = future is None
            if owner:
                future = asyncio.get_running_loop().create_future()
                self._inflight[key] = future
        if not owner:
            return await asyncio.shield(future)

        try:
            self.loads += 1
            value = await self._loader(key)
        except BaseException as exc:
            async with self._lock:
                self._inflight.pop(key, None)
            future.set_exception(exc)
            # Retrieve so that an unawaited failure does not warn at GC time.
            future.exception()
            raise
        async with self._lock:
            self._values[key] = _CachedValue(value=value, expires_at=self._clock() + self._ttl)
            self._inflight.pop(key, None)
        future.set_result(value)
        return value

    async def refresh(self, key: K) -> V:
        """Drop the cached value and load a fresh one (single-flight)."""

        await self.invalidate(key)
        return await self.get(key)

    async def invalidate(self, key: K | None = None) -> None:
        async with self._lock:
            if key is None:
                self._values.clear()
            else:
                self._values.pop(key, None)

    def peek(self, key: K) -> V | None:
        cached = self._values.get(key)
        if cached is None or cached.expires_at <= self._clock():
            return None
        return cached.value


__all__ = ["LookupStore"]
