from __future__ import annotations

import copy
import os
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from authgate.application.dto.auth import AccessTokenPayload, GoogleIdentityInfo  # noqa: E402
from authgate.domain.entities.user import AccountLinkToken, AuthSession, Identity, User  # noqa: E402
from authgate.domain.exceptions import (  # noqa: E402
    EmailAlreadyInUseError,
    IdentityAlreadyLinkedError,
    InvalidAccessTokenError,
)


class FakeAuthPort:
    """AuthPort em memoria; transacoes restauram o estado anterior em caso de erro."""

    def __init__(self):
        self.users: dict[str, User] = {}
        self.identities: dict[str, Identity] = {}
        self.sessions: dict[str, AuthSession] = {}
        self.link_tokens: dict[str, AccountLinkToken] = {}
        self.transactions = 0

    def execute_in_transaction(self, fn):
        snapshot = copy.deepcopy((self.users, self.identities, self.sessions, self.link_tokens))
        self.transactions += 1
        try:
            return fn(self)
        except Exception:
            self.users, self.identities, self.sessions, self.link_tokens = snapshot
            raise

    def get_user_by_id(self, *, user_id: str) -> User | None:
        return self.users.get(user_id)

    def get_user_by_email(self, *, email: str) -> User | None:
        email_l = email.lower()
        for user in self.users.values():
            if user.email and user.email.lower() == email_l:
                return user
        return None

    def create_user(self, *, user_id, email, email_verified_at, role, created_at) -> User:
        if email and self.get_user_by_email(email=email):
            raise EmailAlreadyInUseError()
        user = User(
            id=user_id,
            email=email,
            email_verified_at=email_verified_at,
            role=role,
            created_at=created_at,
            updated_at=created_at,
        )
        self.users[user.id] = user
        return user

    def update_user_email(self, *, user_id, email, email_verified_at, updated_at) -> None:
        user = self.users[user_id]
        self.users[user_id] = replace(user, email=email, email_verified_at=email_verified_at, updated_at=updated_at)

    def update_user_email_verified_at(self, *, user_id, email_verified_at) -> None:
        user = self.users[user_id]
        self.users[user_id] = replace(user, email_verified_at=email_verified_at)

    def delete_user(self, *, user_id: str) -> None:
        self.users.pop(user_id, None)
        for identity_id in [key for key, value in self.identities.items() if value.user_id == user_id]:
            del self.identities[identity_id]

    def create_identity(
        self,
        *,
        identity_id,
        user_id,
        provider,
        provider_user_id,
        email,
        password_hash,
        metadata,
        created_at,
    ) -> Identity:
        if self.get_identity_by_provider_user_id(provider=provider, provider_user_id=provider_user_id):
            raise IdentityAlreadyLinkedError()
        identity = Identity(
            id=identity_id,
            user_id=user_id,
            provider=provider,
            provider_user_id=provider_user_id,
            email=email,
            password_hash=password_hash,
            created_at=created_at,
            metadata=dict(metadata or {}),
        )
        self.identities[identity.id] = identity
        return identity

    def get_identity_by_provider_user_id(self, *, provider, provider_user_id) -> Identity | None:
        for identity in self.identities.values():
            if identity.provider == provider and identity.provider_user_id == provider_user_id:
                return identity
        return None

    def get_identity_for_user_provider(self, *, user_id, provider) -> Identity | None:
        for identity in self.identities.values():
            if identity.user_id == user_id and identity.provider == provider:
                return identity
        return None

    def list_identities_for_user(self, *, user_id) -> list[Identity]:
        return [identity for identity in self.identities.values() if identity.user_id == user_id]

    def update_identity_password_hash(self, *, identity_id, password_hash) -> None:
        identity = self.identities[identity_id]
        self.identities[identity_id] = replace(identity, password_hash=password_hash)

    def reassign_identity(self, *, identity_id, user_id, metadata) -> None:
        identity = self.identities[identity_id]
        self.identities[identity_id] = replace(identity, user_id=user_id, metadata=dict(metadata or {}))

    def create_session(
        self,
        *,
        session_id,
        user_id,
        refresh_token_hash,
        expires_at,
        user_agent,
        ip,
        created_at,
    ) -> AuthSession:
        session = AuthSession(
            id=session_id,
            user_id=user_id,
            refresh_token_hash=refresh_token_hash,
            expires_at=expires_at,
            revoked_at=None,
            replaced_by_session_id=None,
            user_agent=user_agent,
            ip=ip,
            created_at=created_at,
        )
        self.sessions[session.id] = session
        return session

    def get_session_by_id(self, *, session_id) -> AuthSession | None:
        return self.sessions.get(session_id)

    def get_session_by_refresh_token_hash(self, *, refresh_token_hash) -> AuthSession | None:
        for session in self.sessions.values():
            if session.refresh_token_hash == refresh_token_hash:
                return session
        return None

    def revoke_session(self, *, session_id, revoked_at, replaced_by_session_id=None) -> bool:
        session = self.sessions.get(session_id)
        if session is None or session.revoked_at is not None:
            return False
        self.sessions[session_id] = replace(
            session,
            revoked_at=revoked_at,
            replaced_by_session_id=replaced_by_session_id,
        )
        return True

    def delete_sessions_for_user(self, *, user_id) -> None:
        for session_id in [key for key, value in self.sessions.items() if value.user_id == user_id]:
            del self.sessions[session_id]

    def create_link_token(self, *, link_token_id, user_id, token_hash, expires_at, created_at) -> AccountLinkToken:
        link_token = AccountLinkToken(
            id=link_token_id,
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            consumed_at=None,
            created_at=created_at,
        )
        self.link_tokens[link_token.id] = link_token
        return link_token

    def get_link_token_by_hash(self, *, token_hash) -> AccountLinkToken | None:
        for link_token in self.link_tokens.values():
            if link_token.token_hash == token_hash:
                return link_token
        return None

    def consume_link_token(self, *, link_token_id, consumed_at) -> bool:
        link_token = self.link_tokens.get(link_token_id)
        if link_token is None or link_token.consumed_at is not None:
            return False
        self.link_tokens[link_token_id] = replace(link_token, consumed_at=consumed_at)
        return True

    def delete_link_tokens_for_user(self, *, user_id) -> None:
        for token_id in [key for key, value in self.link_tokens.items() if value.user_id == user_id]:
            del self.link_tokens[token_id]


class FakePasswordHasher:
    def hash(self, password: str) -> str:
        return f"hashed::{password}"

    def verify(self, password: str, stored_hash: str) -> bool:
        return stored_hash in (f"hashed::{password}", f"legacy::{password}")

    def verify_and_update(self, password: str, stored_hash: str) -> tuple[bool, str | None]:
        if not self.verify(password, stored_hash):
            return False, None
        if stored_hash.startswith("legacy::"):
            return True, self.hash(password)
        return True, None


class FakeTokenPort:
    access_ttl_seconds = 900

    def __init__(self):
        self._counter = 0

    def create_access_token(self, *, user_id, role, session_id, now) -> str:
        return f"access:{user_id}:{role}:{session_id}"

    def decode_access_token(self, *, token: str) -> AccessTokenPayload:
        parts = token.split(":")
        if len(parts) != 4 or parts[0] != "access":
            raise InvalidAccessTokenError()
        return AccessTokenPayload(user_id=parts[1], role=parts[2], session_id=parts[3], issued_at=0, expires_at=0)

    def generate_refresh_token(self) -> str:
        self._counter += 1
        return f"refresh-token-{self._counter}"

    def generate_link_token(self) -> str:
        self._counter += 1
        return f"link-token-value-{self._counter:08d}"

    def hash_token(self, *, token: str) -> str:
        return f"hash::{token}"

    def refresh_token_expires_at(self, *, now: datetime) -> datetime:
        return now + timedelta(days=30)


class FakeGoogleOauthPort:
    def __init__(self, identity: GoogleIdentityInfo | None = None):
        self.identity = identity or GoogleIdentityInfo(
            subject="google-sub-1",
            email="user@example.com",
            email_verified=True,
            name="Google User",
            picture=None,
            locale="en",
        )
        self.calls: list[str] = []

    def verify_id_token(self, *, id_token: str) -> GoogleIdentityInfo:
        self.calls.append(id_token)
        return self.identity


def utc(**delta) -> datetime:
    return datetime.now(timezone.utc) + timedelta(**delta)


@pytest.fixture
def auth_port() -> FakeAuthPort:
    return FakeAuthPort()


@pytest.fixture
def password_hasher() -> FakePasswordHasher:
    return FakePasswordHasher()


@pytest.fixture
def token_port() -> FakeTokenPort:
    return FakeTokenPort()


@pytest.fixture
def google_oauth_port() -> FakeGoogleOauthPort:
    return FakeGoogleOauthPort()


@pytest.fixture
def make_user(auth_port):
    def _make_user(user_id: str = "user-1", *, email: str | None = None, role: str = "USER") -> User:
        return auth_port.create_user(
            user_id=user_id,
            email=email,
            email_verified_at=None,
            role=role,
            created_at=utc(),
        )

    return _make_user
