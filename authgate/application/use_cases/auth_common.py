from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from authgate.application.dto.auth import AuthTokensOutput, AuthUserOutput
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.token_port import TokenPort
from authgate.domain.entities.user import AccountLinkToken, AuthSession, User
from authgate.domain.exceptions import ExpiredLinkTokenError, InvalidLinkTokenError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_optional_email(email: str | None) -> str | None:
    if email is None:
        return None
    normalized = normalize_email(email)
    return normalized or None


def build_auth_user_output(user: User) -> AuthUserOutput:
    return AuthUserOutput(
        id=user.id,
        role=user.role,
        email=user.email,
    )


def issue_tokens(
    *,
    user: User,
    auth_port: AuthPort,
    token_port: TokenPort,
    user_agent: str | None,
    ip: str | None,
) -> AuthTokensOutput:
    _, tokens = issue_session(
        user=user,
        auth_port=auth_port,
        token_port=token_port,
        user_agent=user_agent,
        ip=ip,
    )
    return tokens


def issue_session(
    *,
    user: User,
    auth_port: AuthPort,
    token_port: TokenPort,
    user_agent: str | None,
    ip: str | None,
) -> tuple[AuthSession, AuthTokensOutput]:
    now = utcnow()
    refresh_token = token_port.generate_refresh_token()
    session = auth_port.create_session(
        session_id=str(uuid4()),
        user_id=user.id,
        refresh_token_hash=token_port.hash_token(token=refresh_token),
        expires_at=token_port.refresh_token_expires_at(now=now),
        user_agent=user_agent,
        ip=ip,
        created_at=now,
    )
    access_token = token_port.create_access_token(
        user_id=user.id,
        role=user.role,
        session_id=session.id,
        now=now,
    )
    return session, AuthTokensOutput(
        user=build_auth_user_output(user),
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=token_port.access_ttl_seconds,
    )


def find_link_token(*, auth_port: AuthPort, token_port: TokenPort, raw_token: str) -> AccountLinkToken | None:
    token = raw_token.strip()
    if not token:
        return None
    return auth_port.get_link_token_by_hash(token_hash=token_port.hash_token(token=token))


def resolve_active_link_token(
    *,
    auth_port: AuthPort,
    token_port: TokenPort,
    raw_token: str,
    user_id: str | None = None,
) -> AccountLinkToken:
    link_token = find_link_token(auth_port=auth_port, token_port=token_port, raw_token=raw_token)
    if link_token is None:
        raise InvalidLinkTokenError()
    if user_id is not None and link_token.user_id != user_id:
        raise InvalidLinkTokenError()
    if not link_token.is_usable(utcnow()):
        raise ExpiredLinkTokenError()
    return link_token


def consume_link_token(*, auth_port: AuthPort, link_token: AccountLinkToken) -> None:
    if not auth_port.consume_link_token(link_token_id=link_token.id, consumed_at=utcnow()):
        raise ExpiredLinkTokenError()


def merge_link_metadata(
    input_metadata: dict | None,
    provider_metadata: dict | None,
) -> dict | None:
    if not input_metadata and not provider_metadata:
        return None
    merged = dict(input_metadata or {})
    merged.update({key: value for key, value in (provider_metadata or {}).items() if value is not None})
    return merged
