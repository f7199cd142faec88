from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta

import jwt

from authgate.application.dto.auth import AccessTokenPayload
from authgate.application.ports.token_port import TokenPort
from authgate.domain.entities.user import USER_ROLES, UserRole
from authgate.domain.exceptions import InvalidAccessTokenError


ACCESS_TOKEN_ALGORITHM = "HS256"
REFRESH_TOKEN_BYTES = 48
LINK_TOKEN_BYTES = 24


class JwtTokenService(TokenPort):
    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        access_ttl_seconds: int,
        refresh_ttl_days: int,
    ):
        if access_secret == refresh_secret:
            raise ValueError("Access token secret must differ from the refresh token hash secret.")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret.encode("utf-8")
        self._access_ttl_seconds = access_ttl_seconds
        self._refresh_ttl_days = refresh_ttl_days

    @property
    def access_ttl_seconds(self) -> int:
        return self._access_ttl_seconds

    def create_access_token(self, *, user_id: str, role: UserRole, session_id: str, now: datetime) -> str:
        exp = now + timedelta(seconds=self._access_ttl_seconds)
        payload = {
            "sub": user_id,
            "role": role,
            "sid": session_id,
            "type": "access",
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self._access_secret, algorithm=ACCESS_TOKEN_ALGORITHM)

    def decode_access_token(self, *, token: str) -> AccessTokenPayload:
        try:
            payload = jwt.decode(
                token,
                self._access_secret,
                algorithms=[ACCESS_TOKEN_ALGORITHM],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidAccessTokenError() from exc

        if payload.get("type") != "access":
            raise InvalidAccessTokenError("Invalid token type.")

        user_id = payload.get("sub")
        session_id = payload.get("sid")
        role = payload.get("role")
        if not user_id or not isinstance(user_id, str):
            raise InvalidAccessTokenError("Invalid token subject.")
        if not session_id or not isinstance(session_id, str):
            raise InvalidAccessTokenError("Invalid token session.")
        if role not in USER_ROLES:
            raise InvalidAccessTokenError("Invalid user role in access token.")

        return AccessTokenPayload(
            user_id=user_id,
            role=role,
            session_id=session_id,
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
        )

    def generate_refresh_token(self) -> str:
        return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)

    def generate_link_token(self) -> str:
        return secrets.token_urlsafe(LINK_TOKEN_BYTES)

    def hash_token(self, *, token: str) -> str:
        return hmac.new(self._refresh_secret, token.encode("utf-8"), hashlib.sha256).hexdigest()

    def refresh_token_expires_at(self, *, now: datetime) -> datetime:
        return now + timedelta(days=self._refresh_ttl_days)
