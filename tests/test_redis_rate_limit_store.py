from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import redis

from authgate.infrastructure.rate_limit.redis_store import RedisRateLimitStore


def _store_with_results(results, *, now_ms: int = 5_000):
    client = MagicMock()
    pipe = client.pipeline.return_value
    pipe.execute.return_value = results
    return RedisRateLimitStore(client, clock=lambda: now_ms), client, pipe


def test_increment_uses_single_transactional_pipeline():
    store, client, pipe = _store_with_results([3, True, 42_000])

    hit = store.increment("rl:auth_global_ip:10.0.0.1", 60_000)

    client.pipeline.assert_called_once_with(transaction=True)
    pipe.incr.assert_called_once_with("rl:auth_global_ip:10.0.0.1")
    pipe.pexpire.assert_called_once_with("rl:auth_global_ip:10.0.0.1", 60_000, nx=True)
    pipe.pttl.assert_called_once_with("rl:auth_global_ip:10.0.0.1")
    assert hit.count == 3
    assert hit.reset_at_ms == 5_000 + 42_000


def test_missing_ttl_falls_back_to_window():
    store, _, _ = _store_with_results(["1", False, -1])

    hit = store.increment("key", 60_000)

    assert hit.count == 1
    assert hit.reset_at_ms == 5_000 + 60_000


def test_incomplete_pipeline_result_raises():
    store, _, _ = _store_with_results([1])

    with pytest.raises(redis.RedisError):
        store.increment("key", 60_000)


def test_connection_errors_propagate():
    client = MagicMock()
    client.pipeline.return_value.execute.side_effect = redis.ConnectionError("refused")
    store = RedisRateLimitStore(client)

    with pytest.raises(redis.ConnectionError):
        store.increment("key", 60_000)


def test_close_errors_are_logged_not_raised():
    client = MagicMock()
    client.close.side_effect = redis.RedisError("already closed")

    RedisRateLimitStore(client).close()

    client.close.assert_called_once_with()
