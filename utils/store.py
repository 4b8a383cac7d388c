# utils/store.py - Shared key-value store used by the cache and rate limiter
"""
Narrow store interface (GET / SET-with-expiry / INCR / EXPIRE / TTL).

The cache and the rate limiter receive a store instance through their
constructors. Production uses Redis; tests and local runs use the
in-memory implementation.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, Protocol, Tuple, TypeVar

import redis

from config import STORE_TIMEOUT_SECONDS
from utils.logger import get_store_logger

logger = get_store_logger()

T = TypeVar("T")


class StoreUnavailable(Exception):
    """The shared store is unreachable, timed out, or not configured."""
    pass


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a fail-open call: a value, plus the reason if degraded."""

    value: T
    degraded: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.degraded is None


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None: ...

    def incr(self, key: str) -> int: ...

    def expire(self, key: str, seconds: int) -> bool: ...

    def ttl(self, key: str) -> int: ...


class RedisStore:
    """KeyValueStore backed by a Redis server."""

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str, timeout: float = STORE_TIMEOUT_SECONDS) -> "RedisStore":
        client = redis.Redis.from_url(
            url,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            decode_responses=True,
        )
        return cls(client)

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(key)
        except redis.RedisError as e:
            raise StoreUnavailable(f"GET {key} failed: {e}") from e

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        try:
            self._client.set(key, value, ex=ex)
        except redis.RedisError as e:
            raise StoreUnavailable(f"SET {key} failed: {e}") from e

    def incr(self, key: str) -> int:
        try:
            return int(self._client.incr(key))
        except redis.RedisError as e:
            raise StoreUnavailable(f"INCR {key} failed: {e}") from e

    def expire(self, key: str, seconds: int) -> bool:
        try:
            return bool(self._client.expire(key, seconds))
        except redis.RedisError as e:
            raise StoreUnavailable(f"EXPIRE {key} failed: {e}") from e

    def ttl(self, key: str) -> int:
        try:
            return int(self._client.ttl(key))
        except redis.RedisError as e:
            raise StoreUnavailable(f"TTL {key} failed: {e}") from e


class InMemoryStore:
    """Process-local KeyValueStore with Redis-like expiry semantics.

    ``clock`` returns seconds; tests pass a controllable clock to step
    through TTLs without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str) -> Optional[Tuple[str, Optional[float]]]:
        entry = self._data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return entry

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live(key)
            return entry[0] if entry else None

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        with self._lock:
            expires_at = self._clock() + ex if ex else None
            self._data[key] = (value, expires_at)

    def incr(self, key: str) -> int:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                count, expires_at = 0, None
            else:
                try:
                    count = int(entry[0])
                except ValueError:
                    raise StoreUnavailable(f"INCR {key}: value is not an integer")
                expires_at = entry[1]
            count += 1
            self._data[key] = (str(count), expires_at)
            return count

    def expire(self, key: str, seconds: int) -> bool:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return False
            self._data[key] = (entry[0], self._clock() + seconds)
            return True

    def ttl(self, key: str) -> int:
        # Same sentinel values as Redis: -2 missing, -1 no expiry
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return -2
            if entry[1] is None:
                return -1
            return max(int(round(entry[1] - self._clock())), 0)


def create_store(url: str = "") -> Optional[KeyValueStore]:
    """Build the configured store, or None when no store URL is set."""
    if not url:
        logger.warning("Shared store not configured; caching and rate limiting are disabled")
        return None
    return RedisStore.from_url(url)
