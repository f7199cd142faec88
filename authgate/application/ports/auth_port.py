from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Protocol, TypeVar

from authgate.domain.entities.user import (
    AccountLinkToken,
    AuthSession,
    Identity,
    IdentityProvider,
    User,
    UserRole,
)


TAuthResult = TypeVar("TAuthResult")


class AuthPort(Protocol):
    def execute_in_transaction(self, fn: Callable[[AuthPort], TAuthResult]) -> TAuthResult:
        ...

    def get_user_by_id(self, *, user_id: str) -> User | None:
        ...

    def get_user_by_email(self, *, email: str) -> User | None:
        ...

    def create_user(
        self,
        *,
        user_id: str,
        email: str | None,
        email_verified_at: datetime | None,
        role: UserRole,
        created_at: datetime,
    ) -> User:
        ...

    def update_user_email(
        self,
        *,
        user_id: str,
        email: str,
        email_verified_at: datetime | None,
        updated_at: datetime,
    ) -> None:
        ...

    def update_user_email_verified_at(self, *, user_id: str, email_verified_at: datetime) -> None:
        ...

    def delete_user(self, *, user_id: str) -> None:
        ...

    def create_identity(
        self,
        *,
        identity_id: str,
        user_id: str,
        provider: IdentityProvider,
        provider_user_id: str,
        email: str | None,
        password_hash: str | None,
        metadata: dict[str, Any] | None,
        created_at: datetime,
    ) -> Identity:
        ...

    def get_identity_by_provider_user_id(
        self,
        *,
        provider: IdentityProvider,
        provider_user_id: str,
    ) -> Identity | None:
        ...

    def get_identity_for_user_provider(
        self,
        *,
        user_id: str,
        provider: IdentityProvider,
    ) -> Identity | None:
        ...

    def list_identities_for_user(self, *, user_id: str) -> list[Identity]:
        ...

    def update_identity_password_hash(self, *, identity_id: str, password_hash: str) -> None:
        ...

    def reassign_identity(
        self,
        *,
        identity_id: str,
        user_id: str,
        metadata: dict[str, Any] | None,
    ) -> None:
        ...

    def create_session(
        self,
        *,
        session_id: str,
        user_id: str,
        refresh_token_hash: str,
        expires_at: datetime,
        user_agent: str | None,
        ip: str | None,
        created_at: datetime,
    ) -> AuthSession:
        ...

    def get_session_by_id(self, *, session_id: str) -> AuthSession | None:
        ...

    def get_session_by_refresh_token_hash(self, *, refresh_token_hash: str) -> AuthSession | None:
        ...

    def revoke_session(
        self,
        *,
        session_id: str,
        revoked_at: datetime,
        replaced_by_session_id: str | None = None,
    ) -> bool:
        ...

    def delete_sessions_for_user(self, *, user_id: str) -> None:
        ...

    def create_link_token(
        self,
        *,
        link_token_id: str,
        user_id: str,
        token_hash: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> AccountLinkToken:
        ...

    def get_link_token_by_hash(self, *, token_hash: str) -> AccountLinkToken | None:
        ...

    def consume_link_token(self, *, link_token_id: str, consumed_at: datetime) -> bool:
        ...

    def delete_link_tokens_for_user(self, *, user_id: str) -> None:
        ...
