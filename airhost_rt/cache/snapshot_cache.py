"""
Snapshot cache with a per-instance time-to-live.

Entries are overwritten on every miss and only removed by ``clear()``,
``sweep()`` or capacity eviction. All access happens on the event loop,
so the check-then-set in ``get_or_compute`` needs no lock; two concurrent
misses for one key both compute unless single-flight is enabled.
"""

import asyncio
import inspect
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

import structlog

from ..utils.time import Clock, monotonic_clock

logger = structlog.get_logger(__name__)

T = TypeVar("T")

ComputeFn = Callable[[], Union[T, Awaitable[T]]]


@dataclass
class CachedSnapshot:
    key: str
    payload: Any
    computed_at: float


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    """A payload plus whether it was served from the cache"""
    payload: T
    from_cache: bool


class SnapshotCache:
    """
    TTL cache for computed snapshots.

    Args:
        ttl_seconds: Freshness window shared by every entry
        clock: Seconds source; monotonic by default
        max_entries: Evict the oldest entry beyond this many (None = unbounded)
        single_flight: Let concurrent misses for a key share one computation
        name: Label used in log events
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Optional[Clock] = None,
        max_entries: Optional[int] = None,
        single_flight: bool = False,
        name: str = "snapshot"
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")

        self.ttl_seconds = ttl_seconds
        self.clock = clock or monotonic_clock
        self.max_entries = max_entries
        self.single_flight = single_flight
        self.name = name
        self.logger = logger.bind(cache=name)

        self._entries: OrderedDict[str, CachedSnapshot] = OrderedDict()
        self._inflight: dict[str, asyncio.Future] = {}

        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.peek(key) is not None

    def is_fresh(self, entry: CachedSnapshot, ttl: Optional[float] = None) -> bool:
        ttl = self.ttl_seconds if ttl is None else ttl
        return self.clock() - entry.computed_at < ttl

    def peek(self, key: str) -> Optional[CachedSnapshot]:
        """Return the entry for key if it is still fresh, without computing."""
        entry = self._entries.get(key)
        if entry is not None and self.is_fresh(entry):
            return entry
        return None

    async def get_or_compute(self, key: str, compute_fn: ComputeFn,
                             ttl: Optional[float] = None) -> CacheResult:
        """
        Serve a fresh snapshot for key, or compute and store a new one.

        Args:
            key: Cache key
            compute_fn: Zero-argument callable, sync or async
            ttl: Freshness override for this lookup only

        Returns:
            CacheResult; a hit returns the very payload object stored on the miss
        """
        entry = self._entries.get(key)
        if entry is not None and self.is_fresh(entry, ttl):
            self.hits += 1
            return CacheResult(payload=entry.payload, from_cache=True)

        self.misses += 1

        if self.single_flight:
            return await self._join_or_compute(key, compute_fn)

        payload = await self._compute(compute_fn)
        self._store(key, payload)
        return CacheResult(payload=payload, from_cache=False)

    async def _compute(self, compute_fn: ComputeFn) -> Any:
        result = compute_fn()
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _join_or_compute(self, key: str, compute_fn: ComputeFn) -> CacheResult:
        while True:
            pending = self._inflight.get(key)
            if pending is None:
                return await self._compute_shared(key, compute_fn)
            try:
                payload = await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
                # The caller that owned the computation was cancelled
                self.logger.debug("Shared computation cancelled, retrying", key=key)
                continue
            return CacheResult(payload=payload, from_cache=False)

    async def _compute_shared(self, key: str, compute_fn: ComputeFn) -> CacheResult:
        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            payload = await self._compute(compute_fn)
        except Exception as e:
            future.set_exception(e)
            # Retrieved here in case no other caller is waiting
            future.exception()
            raise
        else:
            self._store(key, payload)
            future.set_result(payload)
            return CacheResult(payload=payload, from_cache=False)
        finally:
            if not future.done():
                future.cancel()
            if self._inflight.get(key) is future:
                del self._inflight[key]

    def _store(self, key: str, payload: Any) -> None:
        self._entries[key] = CachedSnapshot(key=key, payload=payload, computed_at=self.clock())
        self._entries.move_to_end(key)

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self.logger.debug("Cache entry evicted", key=evicted)

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def sweep(self) -> int:
        """Drop expired entries and return how many were removed."""
        expired = [key for key, entry in self._entries.items() if not self.is_fresh(entry)]
        for key in expired:
            del self._entries[key]

        if expired:
            self.logger.debug("Expired cache entries swept", count=len(expired))
        return len(expired)

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        self.logger.info("Cache cleared", entries=count)

    def stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "ttl_seconds": self.ttl_seconds,
        }
