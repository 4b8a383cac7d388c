# utils/rate_limiter.py - Fixed-window rate limiter on the shared store
"""
Fixed-window request counter keyed by client identity.

The window starts with a client's first request and its expiry is set
only when the counter is created, so the quota resets at a fixed point
rather than sliding. If the store is unreachable or unconfigured the
limiter fails open: the request is admitted and the decision is marked
degraded.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from config import (
    RATE_LIMIT_ATOMIC,
    RATE_LIMIT_KEY_PREFIX,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW_SECONDS,
)
from utils.logger import get_store_logger
from utils.store import KeyValueStore, StoreUnavailable

logger = get_store_logger()


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    limit: int
    retry_after_seconds: Optional[int] = None
    degraded: Optional[str] = None


class RateLimiter:
    def __init__(
        self,
        store: Optional[KeyValueStore],
        max_requests: int = RATE_LIMIT_REQUESTS,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
        atomic: bool = RATE_LIMIT_ATOMIC,
        prefix: str = RATE_LIMIT_KEY_PREFIX,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.atomic = atomic
        self.prefix = prefix

    def key(self, client_id: str) -> str:
        return f"{self.prefix}{client_id}"

    def _fail_open(self, reason: str) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=True,
            remaining=self.max_requests,
            limit=self.max_requests,
            degraded=reason,
        )

    def _deny(self, key: str) -> RateLimitDecision:
        ttl = self.store.ttl(key)
        if ttl == -1:
            # Counter lost its expiry (e.g. EXPIRE failed after INCR); restart the window
            self.store.expire(key, self.window_seconds)
        retry_after = ttl if ttl > 0 else self.window_seconds
        return RateLimitDecision(
            allowed=False,
            remaining=0,
            limit=self.max_requests,
            retry_after_seconds=retry_after,
        )

    def _admit(self, count: int) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=True,
            remaining=max(self.max_requests - count, 0),
            limit=self.max_requests,
        )

    def admit(self, client_id: str) -> RateLimitDecision:
        """Count one request for client_id and decide whether it may proceed."""
        if self.store is None:
            logger.warning("Rate limiting is disabled (store not configured)")
            return self._fail_open("rate limit store not configured")

        key = self.key(client_id)
        try:
            if self.atomic:
                return self._admit_atomic(key)
            return self._admit_read_then_increment(key)
        except StoreUnavailable as e:
            logger.warning(f"Rate limiting skipped, store unavailable: {e}")
            return self._fail_open(str(e))

    def _admit_atomic(self, key: str) -> RateLimitDecision:
        count = self.store.incr(key)
        if count == 1:
            self.store.expire(key, self.window_seconds)
        if count > self.max_requests:
            return self._deny(key)
        return self._admit(count)

    def _admit_read_then_increment(self, key: str) -> RateLimitDecision:
        # Two concurrent first requests can both read 0; tolerated in this mode
        raw = self.store.get(key)
        try:
            current = int(raw) if raw else 0
        except ValueError:
            current = 0
        if current >= self.max_requests:
            return self._deny(key)
        self.store.incr(key)
        if current == 0:
            self.store.expire(key, self.window_seconds)
        return self._admit(current + 1)


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    # Check for forwarded IP (behind proxy)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


def check_rate_limit(request: Request, limiter: RateLimiter) -> RateLimitDecision:
    """
    Gate an HTTP request on the limiter.

    Raises:
        HTTPException: 429 Too Many Requests if the quota is exhausted
    """
    decision = limiter.admit(get_client_ip(request))
    if not decision.allowed:
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit exceeded. Try again in {decision.retry_after_seconds} seconds.",
            headers={"Retry-After": str(limiter.window_seconds)},
        )
    return decision
