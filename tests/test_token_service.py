from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from authgate.domain.exceptions import InvalidAccessTokenError
from authgate.infrastructure.security.token_service import JwtTokenService


ACCESS_SECRET = "access-secret-0123456789abcdef0123"
REFRESH_SECRET = "refresh-secret-0123456789abcdef012"


def _service(**overrides) -> JwtTokenService:
    params = {
        "access_secret": ACCESS_SECRET,
        "refresh_secret": REFRESH_SECRET,
        "access_ttl_seconds": 900,
        "refresh_ttl_days": 30,
    }
    params.update(overrides)
    return JwtTokenService(**params)


def test_access_token_roundtrip():
    service = _service()
    now = datetime.now(timezone.utc)

    token = service.create_access_token(user_id="user-1", role="ADMIN", session_id="session-1", now=now)
    payload = service.decode_access_token(token=token)

    assert payload.user_id == "user-1"
    assert payload.role == "ADMIN"
    assert payload.session_id == "session-1"
    assert payload.expires_at - payload.issued_at == 900


def test_expired_access_token_is_rejected():
    service = _service()
    issued = datetime.now(timezone.utc) - timedelta(hours=1)
    token = service.create_access_token(user_id="user-1", role="USER", session_id="session-1", now=issued)

    with pytest.raises(InvalidAccessTokenError):
        service.decode_access_token(token=token)


def test_token_signed_with_other_secret_is_rejected():
    foreign = _service(access_secret="another-access-secret-0123456789ab")
    token = foreign.create_access_token(
        user_id="user-1",
        role="USER",
        session_id="session-1",
        now=datetime.now(timezone.utc),
    )

    with pytest.raises(InvalidAccessTokenError):
        _service().decode_access_token(token=token)


def test_token_with_wrong_type_or_role_is_rejected():
    now = int(datetime.now(timezone.utc).timestamp())
    base = {"sub": "user-1", "sid": "session-1", "iat": now, "exp": now + 60}

    refresh_like = jwt.encode({**base, "role": "USER", "type": "refresh"}, ACCESS_SECRET, algorithm="HS256")
    bad_role = jwt.encode({**base, "role": "ROOT", "type": "access"}, ACCESS_SECRET, algorithm="HS256")

    with pytest.raises(InvalidAccessTokenError):
        _service().decode_access_token(token=refresh_like)
    with pytest.raises(InvalidAccessTokenError):
        _service().decode_access_token(token=bad_role)


def test_equal_secrets_are_refused():
    with pytest.raises(ValueError):
        _service(refresh_secret=ACCESS_SECRET)


def test_token_hash_is_keyed_and_deterministic():
    service = _service()
    other = _service(refresh_secret="other-refresh-secret-0123456789abc")

    assert service.hash_token(token="abc") == service.hash_token(token="abc")
    assert service.hash_token(token="abc") != service.hash_token(token="abd")
    assert service.hash_token(token="abc") != other.hash_token(token="abc")
    assert len(service.hash_token(token="abc")) == 64


def test_generated_tokens_are_opaque_and_unique():
    service = _service()

    refresh_tokens = {service.generate_refresh_token() for _ in range(20)}
    link_tokens = {service.generate_link_token() for _ in range(20)}

    assert len(refresh_tokens) == 20
    assert len(link_tokens) == 20
    assert all(len(token) >= 32 for token in link_tokens)


def test_refresh_expiry_uses_configured_days():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    assert _service(refresh_ttl_days=7).refresh_token_expires_at(now=now) == now + timedelta(days=7)
