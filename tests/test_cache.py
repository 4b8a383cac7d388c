# tests/test_cache.py - Content cache TTL, fail-open and single-flight behaviour
import threading
import time

import pytest

from ingestion.models import ChartSpec, ExtractionResult, Number, Text
from utils.cache import ContentCache

URL = "https://example.com/data.csv"


def _result():
    chart = ChartSpec(kind="bar", rows=({"k": Text("a"), "v": Number(1)}, {"k": Text("b"), "v": Number(2)}))
    return ExtractionResult(content="CSV Data Analysis: 2 records", visualization=chart)


class TestCacheTTL:
    def test_value_returned_within_ttl(self, store, clock):
        cache = ContentCache(store, ttl_seconds=60)
        assert cache.put(URL, _result()).value is True

        clock.advance(59)
        cached = cache.get(URL)
        assert cached.ok
        assert cached.value == _result()

    def test_value_absent_after_ttl(self, store, clock):
        cache = ContentCache(store, ttl_seconds=60)
        cache.put(URL, _result())

        clock.advance(60)
        assert cache.get(URL).value is None

    def test_key_pattern(self, store):
        cache = ContentCache(store)
        cache.put(URL, _result())
        assert store.get(f"content:{URL}") is not None

    def test_failures_are_not_cached(self, store):
        cache = ContentCache(store)
        assert cache.put(URL, ExtractionResult.failure(f"Failed to extract content from: {URL}")).value is False
        assert store.get(f"content:{URL}") is None

    def test_undecodable_entry_is_a_miss(self, store):
        store.set(f"content:{URL}", "not json", ex=60)
        assert ContentCache(store).get(URL).value is None


class TestGetOrCompute:
    def test_hit_skips_compute(self, store):
        cache = ContentCache(store)
        cache.put(URL, _result())
        calls = []

        outcome = cache.get_or_compute(URL, lambda: calls.append(1) or ExtractionResult(content="fresh"))
        assert outcome.value == _result()
        assert calls == []

    def test_miss_computes_and_stores(self, store):
        cache = ContentCache(store)
        outcome = cache.get_or_compute(URL, _result)
        assert outcome.value == _result()
        assert outcome.ok
        assert cache.get(URL).value == _result()

    def test_store_errors_degrade_to_recompute(self, broken_store):
        cache = ContentCache(broken_store)
        outcome = cache.get_or_compute(URL, _result)
        assert outcome.value == _result()
        assert not outcome.ok
        assert "connection refused" in outcome.degraded

    def test_no_store_configured(self):
        outcome = ContentCache(None).get_or_compute(URL, _result)
        assert outcome.value == _result()
        assert outcome.degraded == "cache store not configured"

    def test_one_compute_in_flight_per_key(self, store):
        cache = ContentCache(store)
        calls = []

        def slow_compute():
            calls.append(1)
            time.sleep(0.05)
            return _result()

        threads = [threading.Thread(target=cache.get_or_compute, args=(URL, slow_compute)) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1

    def test_lock_entries_released_after_compute(self, store):
        cache = ContentCache(store)
        for i in range(200):
            cache.get_or_compute(f"https://example.com/{i}", _result)
        assert cache._locks == {}

    def test_lock_entries_released_after_contention(self, store):
        cache = ContentCache(store)

        def slow_compute():
            time.sleep(0.02)
            return _result()

        threads = [threading.Thread(target=cache.get_or_compute, args=(URL, slow_compute)) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert cache._locks == {}

    def test_lock_released_when_compute_raises(self, store):
        cache = ContentCache(store)

        def failing_compute():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_compute(URL, failing_compute)
        assert cache._locks == {}
