from __future__ import annotations

from threading import Lock
import time
from typing import Callable

from authgate.application.ports.rate_limit_store_port import RateLimitStorePort
from authgate.domain.entities.rate_limit import RateLimitHit


PRUNE_INTERVAL_MS = 60_000


def now_ms() -> int:
    return int(time.time() * 1000)


class InMemoryRateLimitStore(RateLimitStorePort):
    provider = "memory"

    def __init__(self, *, clock: Callable[[], int] = now_ms, prune_interval_ms: int = PRUNE_INTERVAL_MS):
        self._clock = clock
        self._prune_interval_ms = prune_interval_ms
        self._lock = Lock()
        self._counters: dict[str, list[int]] = {}
        self._next_prune_ms = clock() + prune_interval_ms

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def increment(self, key: str, window_ms: int) -> RateLimitHit:
        now = self._clock()
        with self._lock:
            if now >= self._next_prune_ms:
                self._prune_locked(now)
            existing = self._counters.get(key)
            if existing is None or existing[1] <= now:
                existing = [0, now + window_ms]
                self._counters[key] = existing
            existing[0] += 1
            return RateLimitHit(count=existing[0], reset_at_ms=existing[1])

    def prune(self) -> int:
        now = self._clock()
        with self._lock:
            return self._prune_locked(now)

    def _prune_locked(self, now: int) -> int:
        expired = [key for key, (_, reset_at_ms) in self._counters.items() if reset_at_ms <= now]
        for key in expired:
            del self._counters[key]
        self._next_prune_ms = now + self._prune_interval_ms
        return len(expired)

    def close(self) -> None:
        with self._lock:
            self._counters.clear()
