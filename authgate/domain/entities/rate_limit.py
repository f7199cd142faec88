from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class RateLimitContext:
    ip: str
    user_id: str | None = None
    email: str | None = None
    refresh_token_hash: str | None = None


@dataclass(frozen=True)
class RateLimitRule:
    id: str
    limit: int
    window_ms: int
    key: Callable[[RateLimitContext], str | None]


@dataclass(frozen=True)
class RateLimitHit:
    count: int
    reset_at_ms: int
