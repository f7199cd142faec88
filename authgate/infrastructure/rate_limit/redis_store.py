from __future__ import annotations

import logging
from typing import Any, Callable

import redis

from authgate.application.ports.rate_limit_store_port import RateLimitStorePort
from authgate.domain.entities.rate_limit import RateLimitHit
from authgate.infrastructure.rate_limit.memory_store import now_ms


logger = logging.getLogger(__name__)


def create_redis_client(url: str, *, timeout_seconds: float) -> redis.Redis:
    return redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=timeout_seconds,
        socket_timeout=timeout_seconds,
        health_check_interval=30,
    )


class RedisRateLimitStore(RateLimitStorePort):
    provider = "redis"

    def __init__(self, client: redis.Redis, *, clock: Callable[[], int] = now_ms):
        self._client = client
        self._clock = clock

    def increment(self, key: str, window_ms: int) -> RateLimitHit:
        pipe = self._client.pipeline(transaction=True)
        pipe.incr(key)
        pipe.pexpire(key, window_ms, nx=True)
        pipe.pttl(key)
        results = pipe.execute()
        if not results or len(results) < 3:
            raise redis.RedisError("Redis pipeline returned an incomplete result.")

        count = _to_positive_int(results[0])
        ttl_ms = _to_positive_int(results[2])
        return RateLimitHit(
            count=count if count > 0 else 1,
            reset_at_ms=self._clock() + (ttl_ms if ttl_ms > 0 else window_ms),
        )

    def close(self) -> None:
        try:
            self._client.close()
        except redis.RedisError as exc:
            logger.warning("redis_rate_limit_store: close_failed error=%s", exc)


def _to_positive_int(value: Any) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return 0
    return parsed if parsed > 0 else 0
