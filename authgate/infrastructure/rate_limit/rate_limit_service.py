from __future__ import annotations

import logging
import math
from threading import Lock
from typing import Callable

from authgate.application.ports.rate_limit_store_port import RateLimitStorePort
from authgate.domain.entities.rate_limit import RateLimitContext, RateLimitHit
from authgate.domain.exceptions import RateLimitedError, RateLimitUnavailableError
from authgate.domain.services.rate_limit_policies import rules_for_policy
from authgate.infrastructure.rate_limit.memory_store import InMemoryRateLimitStore, now_ms


logger = logging.getLogger(__name__)

EXTERNAL_STORE_RETRY_MS = 30_000


class RateLimitService:
    """Fixed-window limiter: a counter per (rule, key) restarts when its window ends.

    Bursts of up to twice the limit across a window boundary are accepted.
    When an external store is configured every increment goes to it until it
    fails; from then on increments are served by the in-process store until
    the backoff deadline passes and the external store is tried again.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        external_store: RateLimitStorePort | None = None,
        local_store: InMemoryRateLimitStore | None = None,
        fail_open: bool = True,
        retry_ms: int = EXTERNAL_STORE_RETRY_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self._enabled = enabled
        self._external_store = external_store
        self._local_store = local_store or InMemoryRateLimitStore(clock=clock)
        self._fail_open = fail_open
        self._retry_ms = retry_ms
        self._clock = clock
        self._lock = Lock()
        self._external_backoff_until_ms = 0
        self._external_fallback_logged = False

        if external_store is not None:
            logger.info("rate_limit_service: store_selected provider=%s", external_store.provider)

    @property
    def in_fallback(self) -> bool:
        return self._external_fallback_logged

    def enforce(self, policy: str, context: RateLimitContext) -> None:
        if not self._enabled:
            return

        retry_after_seconds = 0
        for rule in rules_for_policy(policy):
            key_part = rule.key(context)
            if not key_part:
                continue

            hit = self._increment(f"rl:{rule.id}:{key_part}", rule.window_ms)
            if hit is None:
                continue

            if hit.count > rule.limit:
                seconds_until_reset = max(1, math.ceil((hit.reset_at_ms - self._clock()) / 1000))
                retry_after_seconds = max(retry_after_seconds, seconds_until_reset)

        if retry_after_seconds > 0:
            logger.info(
                "rate_limit_service: limited policy=%s ip=%s retry_after_seconds=%s",
                policy,
                context.ip,
                retry_after_seconds,
            )
            raise RateLimitedError(retry_after_seconds)

    def close(self) -> None:
        if self._external_store is not None:
            self._external_store.close()

    def _increment(self, key: str, window_ms: int) -> RateLimitHit | None:
        if self._external_store is None:
            return self._increment_local(key, window_ms)

        if self._clock() < self._external_backoff_until_ms:
            return self._increment_local(key, window_ms)

        try:
            hit = self._external_store.increment(key, window_ms)
        except Exception as exc:
            self._enter_fallback(exc)
            return self._increment_local(key, window_ms)

        self._leave_fallback()
        return hit

    def _increment_local(self, key: str, window_ms: int) -> RateLimitHit | None:
        try:
            return self._local_store.increment(key, window_ms)
        except Exception as exc:
            logger.error("rate_limit_service: local_store_failed fail_open=%s error=%s", self._fail_open, exc)
            if self._fail_open:
                return None
            raise RateLimitUnavailableError() from exc

    def _enter_fallback(self, exc: Exception) -> None:
        with self._lock:
            self._external_backoff_until_ms = self._clock() + self._retry_ms
            if self._external_fallback_logged:
                return
            self._external_fallback_logged = True

        logger.warning(
            "rate_limit_service: external_store_unavailable provider=%s fallback=memory retry_in_seconds=%s error=%s",
            self._external_store.provider,
            math.ceil(self._retry_ms / 1000),
            exc,
        )

    def _leave_fallback(self) -> None:
        with self._lock:
            if not self._external_fallback_logged:
                return
            self._external_fallback_logged = False
            self._external_backoff_until_ms = 0

        logger.info(
            "rate_limit_service: external_store_restored provider=%s",
            self._external_store.provider,
        )
