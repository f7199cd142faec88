from __future__ import annotations

from datetime import datetime
from typing import Protocol

from authgate.application.dto.auth import AccessTokenPayload
from authgate.domain.entities.user import UserRole


class TokenPort(Protocol):
    @property
    def access_ttl_seconds(self) -> int:
        ...

    def create_access_token(self, *, user_id: str, role: UserRole, session_id: str, now: datetime) -> str:
        ...

    def decode_access_token(self, *, token: str) -> AccessTokenPayload:
        ...

    def generate_refresh_token(self) -> str:
        ...

    def generate_link_token(self) -> str:
        ...

    def hash_token(self, *, token: str) -> str:
        ...

    def refresh_token_expires_at(self, *, now: datetime) -> datetime:
        ...
