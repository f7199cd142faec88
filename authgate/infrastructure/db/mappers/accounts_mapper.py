from __future__ import annotations

import json
from typing import Any, Mapping

from authgate.domain.entities.user import AccountLinkToken, AuthSession, Identity, User


def _as_str(value: Any) -> str:
    return str(value)


def _as_optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _as_metadata(value: Any) -> dict:
    if value is None:
        return {}
    if isinstance(value, str):
        value = json.loads(value)
    return dict(value) if isinstance(value, dict) else {}


def map_row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=_as_str(row["id"]),
        email=row.get("email"),
        email_verified_at=row.get("email_verified_at"),
        role=row["role"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def map_row_to_identity(row: Mapping[str, Any]) -> Identity:
    return Identity(
        id=_as_str(row["id"]),
        user_id=_as_str(row["user_id"]),
        provider=row["provider"],
        provider_user_id=row["provider_user_id"],
        email=row.get("email"),
        password_hash=row.get("password_hash"),
        created_at=row["created_at"],
        metadata=_as_metadata(row.get("metadata")),
    )


def map_row_to_auth_session(row: Mapping[str, Any]) -> AuthSession:
    return AuthSession(
        id=_as_str(row["id"]),
        user_id=_as_str(row["user_id"]),
        refresh_token_hash=row["refresh_token_hash"],
        expires_at=row["expires_at"],
        revoked_at=row.get("revoked_at"),
        replaced_by_session_id=_as_optional_str(row.get("replaced_by_session_id")),
        user_agent=row.get("user_agent"),
        ip=row.get("ip"),
        created_at=row["created_at"],
    )


def map_row_to_link_token(row: Mapping[str, Any]) -> AccountLinkToken:
    return AccountLinkToken(
        id=_as_str(row["id"]),
        user_id=_as_str(row["user_id"]),
        token_hash=row["token_hash"],
        expires_at=row["expires_at"],
        consumed_at=row.get("consumed_at"),
        created_at=row["created_at"],
    )
