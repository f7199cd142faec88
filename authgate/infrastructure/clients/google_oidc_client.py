from __future__ import annotations

import logging

from google.auth.transport import requests
from google.oauth2 import id_token

from authgate.application.dto.auth import GoogleIdentityInfo
from authgate.application.ports.google_oauth_port import GoogleOauthPort
from authgate.domain.exceptions import InvalidProviderTokenError, ProviderDisabledError


logger = logging.getLogger(__name__)


class _TimeoutRequest(requests.Request):
    """Transport do google-auth com timeout fixo para buscar os certificados."""

    def __init__(self, *, timeout_seconds: float):
        super().__init__()
        self._timeout_seconds = timeout_seconds

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        return super().__call__(
            url,
            method=method,
            body=body,
            headers=headers,
            timeout=timeout or self._timeout_seconds,
            **kwargs,
        )


class GoogleOidcClient(GoogleOauthPort):
    def __init__(self, *, client_id: str | None, timeout_seconds: float = 5.0):
        self._client_id = client_id
        self._timeout_seconds = timeout_seconds

    def verify_id_token(self, *, id_token: str) -> GoogleIdentityInfo:
        if not self._client_id:
            raise ProviderDisabledError("Google auth is not configured.")

        try:
            payload = id_token_verify(
                token=id_token,
                audience=self._client_id,
                timeout_seconds=self._timeout_seconds,
            )
        except Exception as exc:
            logger.info("google_oidc_client: id_token_rejected error=%s", type(exc).__name__)
            raise InvalidProviderTokenError() from exc

        subject = payload.get("sub")
        if not subject:
            raise InvalidProviderTokenError("Google token payload is invalid.")

        email_verified_raw = payload.get("email_verified")
        email_verified = None if email_verified_raw is None else bool(email_verified_raw)
        if isinstance(email_verified_raw, str):
            email_verified = email_verified_raw.lower() == "true"

        return GoogleIdentityInfo(
            subject=str(subject),
            email=_optional_str(payload.get("email")),
            email_verified=email_verified,
            name=_optional_str(payload.get("name")),
            picture=_optional_str(payload.get("picture")),
            locale=_optional_str(payload.get("locale")),
        )


def id_token_verify(*, token: str, audience: str, timeout_seconds: float) -> dict:
    request = _TimeoutRequest(timeout_seconds=timeout_seconds)
    return id_token.verify_oauth2_token(token, request, audience)


def _optional_str(value) -> str | None:
    return value if isinstance(value, str) and value else None
