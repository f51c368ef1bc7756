"""
Avatar Color Caching System
Implements the extraction-result cache with in-flight request coalescing
(FIFO eviction) and the display-color cache (batched FIFO eviction with
prefix invalidation). Both are in-memory and process-lifetime.
"""
import asyncio
import math
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger

from avatar_color.config import config
from avatar_color.utils.metrics import get_metrics_instance


class CacheBackend(ABC):
    """Abstract base class for cache backends."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> bool:
        """Set value in cache."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key from cache."""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if key exists."""
        pass

    @abstractmethod
    def clear(self) -> bool:
        """Clear all cache entries."""
        pass


class InsertionOrderCache(CacheBackend):
    """In-memory cache that tracks insertion order for FIFO eviction.

    Re-setting an existing key refreshes its position to newest.
    """

    def __init__(self, max_size: int):
        if max_size < 1:
            raise ValueError(f"max_size must be positive: {max_size}")
        self.max_size = max_size
        self._cache: Dict[str, Any] = {}
        self._insertion_order: List[str] = []

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def keys(self) -> List[str]:
        """Keys from oldest to newest."""
        return list(self._insertion_order)

    def get(self, key: str) -> Optional[Any]:
        return self._cache.get(key)

    def set(self, key: str, value: Any) -> bool:
        """Set value, then evict if over capacity."""
        if key in self._cache:
            self._insertion_order.remove(key)
        self._cache[key] = value
        self._insertion_order.append(key)

        if len(self._cache) > self.max_size:
            self._evict()
        return True

    def delete(self, key: str) -> bool:
        """Delete key and keep insertion tracking in sync."""
        if key in self._cache:
            del self._cache[key]
            self._insertion_order.remove(key)
            return True
        return False

    def exists(self, key: str) -> bool:
        return key in self._cache

    def clear(self) -> bool:
        self._cache.clear()
        self._insertion_order.clear()
        return True

    def _evict_oldest(self, count: int) -> List[str]:
        evicted = []
        for _ in range(count):
            if not self._insertion_order:
                break
            oldest_key = self._insertion_order.pop(0)
            del self._cache[oldest_key]
            evicted.append(oldest_key)
        return evicted

    @abstractmethod
    def _evict(self):
        """Drop entries after an insert pushed the cache over capacity."""
        pass


class FIFOCache(InsertionOrderCache):
    """Evicts the single oldest-inserted entry when capacity is exceeded."""

    def __init__(self, max_size: Optional[int] = None):
        super().__init__(config.RESULT_CACHE_MAX if max_size is None else max_size)

    def _evict(self):
        evicted = self._evict_oldest(1)
        logger.debug(f"FIFO cache evicted {evicted}")


class BatchEvictingCache(InsertionOrderCache):
    """Evicts the oldest fraction of capacity in one pass when capacity is exceeded."""

    def __init__(self, max_size: Optional[int] = None, evict_fraction: Optional[float] = None):
        super().__init__(config.COLOR_CACHE_MAX if max_size is None else max_size)
        self.evict_fraction = config.COLOR_CACHE_EVICT_FRACTION if evict_fraction is None else evict_fraction
        if not config.validate_evict_fraction(self.evict_fraction):
            raise ValueError(f"evict_fraction must be in (0, 1]: {self.evict_fraction}")

    @property
    def batch_size(self) -> int:
        return max(1, math.floor(self.max_size * self.evict_fraction))

    def _evict(self):
        evicted = self._evict_oldest(self.batch_size)
        logger.debug(f"Batch eviction removed {len(evicted)} entries")

    def delete_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix. Returns the count removed."""
        doomed = [key for key in self._insertion_order if key.startswith(prefix)]
        for key in doomed:
            self.delete(key)
        if doomed:
            logger.debug(f"Invalidated {len(doomed)} entries with prefix {prefix!r}")
        return len(doomed)


class InFlightRegistry:
    """
    Registry of shared pending computations keyed by cache key.

    The first caller for a key starts the computation; later callers for the
    same key attach to it. The entry is removed as soon as the computation
    settles, before any waiter is resumed.
    """

    def __init__(self):
        self._pending: Dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    def get(self, key: str) -> Optional[asyncio.Task]:
        return self._pending.get(key)

    def start(self, key: str, compute: Callable[[], Awaitable[Any]],
              on_success: Optional[Callable[[Any], None]] = None) -> asyncio.Task:
        """
        Start compute() for key and register it.

        Must be called without an intervening await after checking get(key),
        so two callers cannot both start work for the same key.
        """
        if key in self._pending:
            raise RuntimeError(f"Computation already in flight for {key!r}")

        async def runner():
            try:
                result = await compute()
                if on_success is not None:
                    on_success(result)
                return result
            finally:
                self._pending.pop(key, None)

        task = asyncio.ensure_future(runner())
        self._pending[key] = task
        return task


class SwatchCache:
    """Extraction-result cache with request coalescing."""

    def __init__(self, max_size: Optional[int] = None):
        self.results = FIFOCache(max_size)
        self.in_flight = InFlightRegistry()
        self.stats = {'hits': 0, 'misses': 0, 'joins': 0}

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the cached result for key, joining or starting its computation if needed.

        Exceptions from compute propagate to every waiter and nothing is cached.
        """
        metrics = get_metrics_instance()

        if self.results.exists(key):
            self.stats['hits'] += 1
            metrics.record_cache_hit("swatches")
            logger.debug(f"Swatch cache hit for {key}")
            return self.results.get(key)

        pending = self.in_flight.get(key)
        if pending is not None:
            self.stats['joins'] += 1
            metrics.increment("swatch_dedup_joins")
            logger.debug(f"Joining in-flight extraction for {key}")
            return await asyncio.shield(pending)

        self.stats['misses'] += 1
        metrics.record_cache_miss("swatches")
        task = self.in_flight.start(key, compute, on_success=lambda result: self.results.set(key, result))
        return await asyncio.shield(task)

    def invalidate(self, key: str) -> bool:
        return self.results.delete(key)

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        lookups = self.stats['hits'] + self.stats['misses'] + self.stats['joins']
        return {
            'stats': self.stats.copy(),
            'size': len(self.results),
            'in_flight': len(self.in_flight),
            'hit_rate': self.stats['hits'] / lookups if lookups > 0 else 0.0,
        }

    def clear(self) -> bool:
        for key in self.stats:
            self.stats[key] = 0
        return self.results.clear()
