"""
Unit tests for the caching layer.

Tests FIFO and batch eviction, prefix invalidation and in-flight request
coalescing for swatch extraction.
"""

import asyncio

import pytest

from avatar_color.services.cache import (
    BatchEvictingCache, FIFOCache, InFlightRegistry, InsertionOrderCache, SwatchCache
)
from avatar_color.utils.metrics import get_metrics_instance


class TestFIFOCache:
    """Test single-entry FIFO eviction"""

    def test_default_capacity(self):
        assert FIFOCache().max_size == 50

    def test_overflow_evicts_oldest(self):
        cache = FIFOCache(50)
        for i in range(51):
            cache.set(f"key{i}", i)

        assert len(cache) == 50
        assert not cache.exists("key0")
        assert cache.get("key1") == 1
        assert cache.get("key50") == 50

    def test_reset_key_moves_to_newest(self):
        cache = FIFOCache(2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 3)
        cache.set("c", 4)

        assert cache.keys() == ["a", "c"]
        assert cache.get("a") == 3

    def test_delete_and_clear(self):
        cache = FIFOCache(3)
        cache.set("a", 1)
        assert cache.delete("a")
        assert not cache.delete("a")
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0
        assert cache.keys() == []

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            FIFOCache(0)


class TestInsertionOrderCache:
    """Test the shared base class"""

    def test_requires_an_eviction_policy(self):
        with pytest.raises(TypeError):
            InsertionOrderCache(10)


class TestBatchEvictingCache:
    """Test batched eviction and prefix invalidation"""

    def test_overflow_evicts_a_fifth(self):
        cache = BatchEvictingCache(100, 0.2)
        for i in range(101):
            cache.set(f"k{i}", i)

        assert len(cache) == 81
        for i in range(20):
            assert f"k{i}" not in cache
        assert "k20" in cache
        assert "k100" in cache

    def test_no_eviction_at_capacity(self):
        cache = BatchEvictingCache(10, 0.2)
        for i in range(10):
            cache.set(str(i), i)
        assert len(cache) == 10

    def test_batch_size_at_least_one(self):
        assert BatchEvictingCache(3, 0.2).batch_size == 1

    def test_invalid_fraction(self):
        with pytest.raises(ValueError):
            BatchEvictingCache(10, 0.0)
        with pytest.raises(ValueError):
            BatchEvictingCache(10, 1.5)

    def test_delete_prefix_for_subject(self):
        cache = BatchEvictingCache(100)
        cache.set("character|a|normal|dark", 1)
        cache.set("character|a|boosted|light", 2)
        cache.set("character|ab|normal|dark", 3)
        cache.set("persona|a|normal|dark", 4)

        removed = cache.delete_prefix("character|a|")

        assert removed == 2
        assert cache.keys() == ["character|ab|normal|dark", "persona|a|normal|dark"]

    def test_delete_prefix_for_type(self):
        cache = BatchEvictingCache(100)
        cache.set("character|a|normal|dark", 1)
        cache.set("character|b|normal|dark", 2)
        cache.set("persona|a|normal|dark", 3)

        assert cache.delete_prefix("character|") == 2
        assert cache.keys() == ["persona|a|normal|dark"]


class TestInFlightRegistry:
    """Test the pending-computation registry"""

    @pytest.mark.asyncio
    async def test_entry_removed_after_completion(self):
        registry = InFlightRegistry()

        async def compute():
            return 42

        task = registry.start("k", compute)
        assert "k" in registry
        assert await task == 42
        assert "k" not in registry

    @pytest.mark.asyncio
    async def test_duplicate_start_rejected(self):
        registry = InFlightRegistry()
        gate = asyncio.Event()

        async def compute():
            await gate.wait()

        task = registry.start("k", compute)
        with pytest.raises(RuntimeError):
            registry.start("k", compute)
        gate.set()
        await task


class TestSwatchCache:
    """Test extraction-result caching with request coalescing"""

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_computation(self):
        cache = SwatchCache(50)
        calls = 0
        gate = asyncio.Event()

        async def compute():
            nonlocal calls
            calls += 1
            await gate.wait()
            return {"result": calls}

        waiters = [asyncio.ensure_future(cache.get_or_compute("img", compute)) for _ in range(5)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*waiters)

        assert calls == 1
        assert all(result is results[0] for result in results)
        assert cache.stats == {'hits': 0, 'misses': 1, 'joins': 4}
        assert get_metrics_instance().get_counters()["swatch_dedup_joins"] == 4

    @pytest.mark.asyncio
    async def test_completed_result_is_cached(self):
        cache = SwatchCache(50)
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            return "swatches"

        assert await cache.get_or_compute("img", compute) == "swatches"
        assert await cache.get_or_compute("img", compute) == "swatches"

        assert calls == 1
        assert len(cache.in_flight) == 0
        assert cache.get_cache_stats()["hit_rate"] == 0.5

    @pytest.mark.asyncio
    async def test_failure_propagates_and_is_not_cached(self):
        cache = SwatchCache(50)
        gate = asyncio.Event()
        calls = 0

        async def failing():
            nonlocal calls
            calls += 1
            await gate.wait()
            raise OSError("unreadable")

        waiters = [asyncio.ensure_future(cache.get_or_compute("img", failing)) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)

        assert calls == 1
        assert all(isinstance(result, OSError) for result in results)
        assert "img" not in cache.in_flight
        assert not cache.results.exists("img")

        async def succeeding():
            return "ok"

        assert await cache.get_or_compute("img", succeeding) == "ok"

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_shared_work(self):
        cache = SwatchCache(50)
        gate = asyncio.Event()

        async def compute():
            await gate.wait()
            return "value"

        first = asyncio.ensure_future(cache.get_or_compute("img", compute))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(cache.get_or_compute("img", compute))
        await asyncio.sleep(0)

        first.cancel()
        gate.set()

        assert await second == "value"
        with pytest.raises(asyncio.CancelledError):
            await first
        assert cache.results.get("img") == "value"

    @pytest.mark.asyncio
    async def test_eviction_forces_recompute(self):
        cache = SwatchCache(2)
        calls = []

        def make_compute(key):
            async def compute():
                calls.append(key)
                return key
            return compute

        for key in ("a", "b", "c"):
            await cache.get_or_compute(key, make_compute(key))
        await cache.get_or_compute("a", make_compute("a"))

        assert calls == ["a", "b", "c", "a"]

    @pytest.mark.asyncio
    async def test_invalidate_and_clear(self):
        cache = SwatchCache(5)

        async def compute():
            return 1

        await cache.get_or_compute("img", compute)
        assert cache.invalidate("img")
        assert not cache.invalidate("img")

        await cache.get_or_compute("img", compute)
        cache.clear()
        assert cache.get_cache_stats()["size"] == 0
        assert cache.stats == {'hits': 0, 'misses': 0, 'joins': 0}
