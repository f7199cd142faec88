from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal


IdentityProvider = Literal["EMAIL", "GOOGLE", "TELEGRAM"]
UserRole = Literal["USER", "ADMIN"]

IDENTITY_PROVIDERS: tuple[IdentityProvider, ...] = ("EMAIL", "GOOGLE", "TELEGRAM")
USER_ROLES: tuple[UserRole, ...] = ("USER", "ADMIN")


@dataclass(frozen=True)
class User:
    id: str
    email: str | None
    email_verified_at: datetime | None
    role: UserRole
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Identity:
    id: str
    user_id: str
    provider: IdentityProvider
    provider_user_id: str
    email: str | None
    password_hash: str | None
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AuthSession:
    id: str
    user_id: str
    refresh_token_hash: str
    expires_at: datetime
    revoked_at: datetime | None
    replaced_by_session_id: str | None
    user_agent: str | None
    ip: str | None
    created_at: datetime

    def is_active(self, now: datetime) -> bool:
        return self.revoked_at is None and self.expires_at > now


@dataclass(frozen=True)
class AccountLinkToken:
    id: str
    user_id: str
    token_hash: str
    expires_at: datetime
    consumed_at: datetime | None
    created_at: datetime

    def is_usable(self, now: datetime) -> bool:
        return self.consumed_at is None and self.expires_at > now
