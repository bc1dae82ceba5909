"""
Fixed-window rate limiting over a swappable counter store.
Design: the limiter holds no counters itself; a CounterStore (Redis in
production, in-memory for a single process or tests) owns them, so several
API processes can share one budget.
"""

import time
from typing import Protocol

from marketplace.core.errors import RateLimitedError


class CounterStore(Protocol):
    async def incr(self, key: str, ttl_seconds: int) -> int | None:
        """Increment ``key`` and return the new value. The TTL applies on first write.
        Returns None when the store is unavailable."""
        ...


class InMemoryCounterStore:
    """Process-local CounterStore. Expired windows are pruned lazily."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._counts: dict[str, tuple[int, float]] = {}

    async def incr(self, key: str, ttl_seconds: int) -> int:
        now = self._clock()
        count, expires_at = self._counts.get(key, (0, now + ttl_seconds))
        if expires_at <= now:
            count, expires_at = 0, now + ttl_seconds
        count += 1
        self._counts[key] = (count, expires_at)
        if len(self._counts) > 10000:
            self._prune(now)
        return count

    def _prune(self, now: float) -> None:
        for k in [k for k, (_, exp) in self._counts.items() if exp <= now]:
            del self._counts[k]


class RateLimiter:
    def __init__(self, store: CounterStore, max_requests: int, window_seconds: int, clock=time.time):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock

    async def hit(self, identifier: str) -> None:
        """Count one request for ``identifier``; raise RateLimitedError past the budget.
        Fails open when the store cannot be reached."""
        window = int(self._clock() // self.window_seconds)
        count = await self.store.incr(f"ratelimit:{identifier}:{window}", self.window_seconds)
        if count is not None and count > self.max_requests:
            raise RateLimitedError(retry_after_seconds=self.window_seconds)
