"""Tests for the bounded, thread-safe cache structure."""

import threading

import pytest

from order_pipeline.utils.cache import BoundedCache


@pytest.fixture
def cache():
    cache = BoundedCache(max_cost=10, buffer_items=64)
    yield cache
    cache.close()


class TestAdmission:
    def test_value_visible_after_wait(self, cache):
        assert cache.set("a", 1)
        cache.wait()
        assert cache.get("a") == (1, True)

    def test_missing_key(self, cache):
        assert cache.get("nope") == (None, False)

    def test_update_of_resident_key_is_immediate(self, cache):
        cache.set("a", 1)
        cache.wait()
        assert cache.set("a", 2)
        assert cache.get("a") == (2, True)
        assert len(cache) == 1

    def test_cost_above_budget_is_rejected(self, cache):
        assert cache.set("big", "x", cost=11) is False
        cache.wait()
        assert "big" not in cache

    def test_stats_track_hits_and_misses(self, cache):
        cache.set("a", 1)
        cache.wait()
        cache.get("a")
        cache.get("b")
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["admitted"] == 1

    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            BoundedCache(max_cost=0)


class TestEviction:
    def test_size_never_exceeds_budget(self, cache):
        for i in range(200):
            cache.set(i, str(i))
            cache.wait()
            assert len(cache) <= 10
        stats = cache.stats()
        assert stats["cost"] <= 10
        assert stats["evicted"] == 190

    def test_frequently_read_key_survives(self, cache):
        cache.set("hot", "value")
        cache.wait()
        for _ in range(50):
            cache.get("hot")

        for i in range(100):
            cache.set(i, i)
            cache.wait()

        assert cache.get("hot") == ("value", True)


class TestConcurrency:
    def test_parallel_writers_and_readers(self):
        cache = BoundedCache(max_cost=100, buffer_items=16)
        errors = []

        def writer(offset):
            try:
                for i in range(200):
                    key = offset * 1000 + i
                    while not cache.set(key, key):
                        cache.wait()
                    cache.get(key)
                cache.wait()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        cache.close()
        assert errors == []
        assert len(cache) <= 100
        assert cache.stats()["admitted"] == 8 * 200


class TestClose:
    def test_set_after_close_is_dropped(self):
        cache = BoundedCache(max_cost=10)
        cache.close()
        assert cache.closed
        assert cache.set("a", 1) is False

    def test_wait_after_close_returns(self):
        cache = BoundedCache(max_cost=10)
        cache.close()
        cache.wait()

    def test_wait_returns_when_closed_while_queueing_marker(self):
        cache = BoundedCache(max_cost=10)
        put = cache._buffer.put

        def close_then_put(item, *args, **kwargs):
            # close() drains the buffer before the marker lands in it
            cache._buffer.put = put
            cache.close()
            put(item, *args, **kwargs)

        cache._buffer.put = close_then_put
        done = threading.Event()
        threading.Thread(target=lambda: (cache.wait(), done.set()), daemon=True).start()
        assert done.wait(2.0)
