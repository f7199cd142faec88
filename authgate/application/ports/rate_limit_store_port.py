from __future__ import annotations

from typing import Protocol

from authgate.domain.entities.rate_limit import RateLimitHit


class RateLimitStorePort(Protocol):
    provider: str

    def increment(self, key: str, window_ms: int) -> RateLimitHit:
        ...

    def close(self) -> None:
        ...
