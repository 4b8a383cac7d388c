# utils/cache.py - Content-addressed cache of extraction results
"""
Maps a URL to its serialized ExtractionResult in the shared store, with a TTL.

Every store failure is treated as a miss: the caller recomputes and the
returned Outcome names the degradation. Failure placeholders are never
written, so an outage of a target site is not remembered for a day.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Dict, Optional

from config import CACHE_KEY_PREFIX, CACHE_TTL_SECONDS
from ingestion.models import ExtractionResult
from utils.logger import get_store_logger
from utils.store import KeyValueStore, Outcome, StoreUnavailable

logger = get_store_logger()


class ContentCache:
    def __init__(
        self,
        store: Optional[KeyValueStore],
        ttl_seconds: int = CACHE_TTL_SECONDS,
        prefix: str = CACHE_KEY_PREFIX,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        # key -> [lock, threads holding or waiting]
        self._locks: Dict[str, list] = {}
        self._locks_guard = threading.Lock()

    def key(self, url: str) -> str:
        return f"{self.prefix}{url}"

    @contextmanager
    def _key_lock(self, key: str):
        """Hold the per-key lock; the entry is dropped once no thread holds or waits on it."""
        with self._locks_guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def get(self, url: str) -> Outcome[Optional[ExtractionResult]]:
        """Look up a cached result; None on miss, expiry, or store failure."""
        if self.store is None:
            return Outcome(None, degraded="cache store not configured")

        key = self.key(url)
        try:
            payload = self.store.get(key)
        except StoreUnavailable as e:
            logger.warning(f"Cache read failed, treating as miss: {e}")
            return Outcome(None, degraded=str(e))

        if payload is None:
            return Outcome(None)

        try:
            return Outcome(ExtractionResult.from_json(payload))
        except ValueError as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            return Outcome(None)

    def put(self, url: str, result: ExtractionResult) -> Outcome[bool]:
        """Store a successful result with the TTL. Returns whether it was written."""
        if not result.ok:
            return Outcome(False)
        if self.store is None:
            return Outcome(False, degraded="cache store not configured")

        try:
            self.store.set(self.key(url), result.to_json(), ex=self.ttl_seconds)
        except StoreUnavailable as e:
            logger.warning(f"Cache write failed: {e}")
            return Outcome(False, degraded=str(e))
        return Outcome(True)

    def get_or_compute(self, url: str, compute: Callable[[], ExtractionResult]) -> Outcome[ExtractionResult]:
        """
        Return the cached result for url, or compute, store and return it.

        At most one compute per key runs at a time in this process; a second
        caller for the same key waits and then reads the stored value.
        """
        with self._key_lock(self.key(url)):
            cached = self.get(url)
            if cached.value is not None:
                logger.debug(f"Cache hit: {url}")
                return cached

            result = compute()
            stored = self.put(url, result)
            return Outcome(result, degraded=cached.degraded or stored.degraded)
