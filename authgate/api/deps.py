from __future__ import annotations

import hashlib
import logging
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, Request

from authgate.application.dto.auth import AuthUser
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.token_port import TokenPort
from authgate.application.use_cases.auth_common import normalize_optional_email, utcnow
from authgate.application.use_cases.confirm_link import ConfirmLinkUseCase
from authgate.application.use_cases.get_link_providers import GetLinkProvidersUseCase
from authgate.application.use_cases.get_me import GetMeUseCase
from authgate.application.use_cases.link_email import ConfirmEmailLinkUseCase, RequestEmailLinkUseCase
from authgate.application.use_cases.link_telegram import (
    ConfirmTelegramLinkFromBotUseCase,
    GetTelegramLinkStatusUseCase,
)
from authgate.application.use_cases.login_email import LoginEmailUseCase
from authgate.application.use_cases.login_google import LoginGoogleUseCase
from authgate.application.use_cases.login_telegram import LoginTelegramUseCase
from authgate.application.use_cases.logout_session import LogoutSessionUseCase
from authgate.application.use_cases.refresh_session import RefreshSessionUseCase
from authgate.application.use_cases.register_email import RegisterEmailUseCase
from authgate.application.use_cases.start_link import StartLinkUseCase, StartTelegramLinkUseCase
from authgate.domain.entities.rate_limit import RateLimitContext
from authgate.domain.entities.user import UserRole
from authgate.domain.exceptions import ForbiddenError, InvalidAccessTokenError, UnauthorizedError
from authgate.infrastructure.clients.google_oidc_client import GoogleOidcClient
from authgate.infrastructure.clients.telegram_init_data_verifier import TelegramInitDataVerifier
from authgate.infrastructure.db.engine import get_engine
from authgate.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository
from authgate.infrastructure.email.logging_email_sender import LoggingEmailSender
from authgate.infrastructure.rate_limit.rate_limit_service import RateLimitService
from authgate.infrastructure.rate_limit.redis_store import RedisRateLimitStore, create_redis_client
from authgate.infrastructure.security.password_hasher import Argon2PasswordHasher
from authgate.infrastructure.security.token_service import JwtTokenService
from authgate.shared.config import Settings, get_settings


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _get_settings() -> Settings:
    return get_settings()


def _get_db_engine():
    settings = _get_settings()
    if not settings.postgres_dsn:
        raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
    return get_engine(settings.postgres_dsn)


def get_accounts_repository() -> SqlAccountsRepository:
    return SqlAccountsRepository(_get_db_engine())


@lru_cache(maxsize=1)
def _get_password_hasher() -> Argon2PasswordHasher:
    return Argon2PasswordHasher()


@lru_cache(maxsize=1)
def get_token_service() -> JwtTokenService:
    settings = _get_settings()
    return JwtTokenService(
        access_secret=settings.jwt_access_secret,
        refresh_secret=settings.jwt_refresh_secret,
        access_ttl_seconds=settings.access_token_ttl_seconds,
        refresh_ttl_days=settings.refresh_token_ttl_days,
    )


@lru_cache(maxsize=1)
def _get_google_oauth_client() -> GoogleOidcClient:
    settings = _get_settings()
    return GoogleOidcClient(
        client_id=settings.google_client_id,
        timeout_seconds=settings.google_http_timeout_seconds,
    )


@lru_cache(maxsize=1)
def _get_telegram_verifier() -> TelegramInitDataVerifier:
    settings = _get_settings()
    return TelegramInitDataVerifier(
        bot_token=settings.telegram_bot_token,
        max_age_seconds=settings.telegram_init_data_max_age_seconds,
    )


@lru_cache(maxsize=1)
def _get_email_sender() -> LoggingEmailSender:
    return LoggingEmailSender()


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimitService:
    settings = _get_settings()
    external_store = None
    if settings.rate_limit_enabled and settings.redis_url:
        external_store = RedisRateLimitStore(
            create_redis_client(settings.redis_url, timeout_seconds=settings.redis_timeout_seconds)
        )
    elif settings.rate_limit_enabled:
        logger.info("deps: rate_limit_store_selected provider=memory")
    return RateLimitService(
        enabled=settings.rate_limit_enabled,
        external_store=external_store,
        fail_open=settings.rate_limit_fail_open,
    )


def get_access_session_port() -> AuthPort | None:
    if not _get_settings().access_token_session_check:
        return None
    return get_accounts_repository()


def get_client_ip(request: Request) -> str:
    host = request.client.host if request.client is not None else None
    if not host:
        return "unknown"
    if host == "::1":
        return "127.0.0.1"
    if host.startswith("::ffff:"):
        return host[len("::ffff:"):]
    return host


def build_rate_limit_context(
    request: Request,
    *,
    user_id: str | None = None,
    email: str | None = None,
    refresh_token: str | None = None,
) -> RateLimitContext:
    refresh_token_hash = None
    if refresh_token and refresh_token.strip():
        refresh_token_hash = hashlib.sha256(refresh_token.strip().encode("utf-8")).hexdigest()
    return RateLimitContext(
        ip=get_client_ip(request),
        user_id=user_id,
        email=normalize_optional_email(email),
        refresh_token_hash=refresh_token_hash,
    )


def get_register_email_use_case() -> RegisterEmailUseCase:
    return RegisterEmailUseCase(
        auth_port=get_accounts_repository(),
        password_hasher=_get_password_hasher(),
        token_port=get_token_service(),
    )


def get_login_email_use_case() -> LoginEmailUseCase:
    return LoginEmailUseCase(
        auth_port=get_accounts_repository(),
        password_hasher=_get_password_hasher(),
        token_port=get_token_service(),
    )


def get_login_google_use_case() -> LoginGoogleUseCase:
    return LoginGoogleUseCase(
        auth_port=get_accounts_repository(),
        google_oauth_port=_get_google_oauth_client(),
        token_port=get_token_service(),
    )


def get_login_telegram_use_case() -> LoginTelegramUseCase:
    return LoginTelegramUseCase(
        auth_port=get_accounts_repository(),
        telegram_auth_port=_get_telegram_verifier(),
        token_port=get_token_service(),
    )


def get_refresh_session_use_case() -> RefreshSessionUseCase:
    return RefreshSessionUseCase(
        auth_port=get_accounts_repository(),
        token_port=get_token_service(),
    )


def get_logout_session_use_case() -> LogoutSessionUseCase:
    return LogoutSessionUseCase(
        auth_port=get_accounts_repository(),
        token_port=get_token_service(),
    )


def get_get_me_use_case() -> GetMeUseCase:
    return GetMeUseCase(auth_port=get_accounts_repository())


def get_start_link_use_case() -> StartLinkUseCase:
    return StartLinkUseCase(
        auth_port=get_accounts_repository(),
        token_port=get_token_service(),
        ttl_minutes=_get_settings().account_link_token_ttl_minutes,
    )


def get_start_telegram_link_use_case() -> StartTelegramLinkUseCase:
    return StartTelegramLinkUseCase(
        auth_port=get_accounts_repository(),
        start_link_use_case=get_start_link_use_case(),
    )


def get_confirm_link_use_case() -> ConfirmLinkUseCase:
    return ConfirmLinkUseCase(
        auth_port=get_accounts_repository(),
        token_port=get_token_service(),
        password_hasher=_get_password_hasher(),
        google_oauth_port=_get_google_oauth_client(),
        telegram_auth_port=_get_telegram_verifier(),
    )


def get_link_providers_use_case() -> GetLinkProvidersUseCase:
    return GetLinkProvidersUseCase(auth_port=get_accounts_repository())


def get_request_email_link_use_case() -> RequestEmailLinkUseCase:
    settings = _get_settings()
    return RequestEmailLinkUseCase(
        auth_port=get_accounts_repository(),
        token_port=get_token_service(),
        email_sender=_get_email_sender(),
        code_secret=settings.jwt_access_secret,
        frontend_origin=settings.frontend_origin,
    )


def get_confirm_email_link_use_case() -> ConfirmEmailLinkUseCase:
    return ConfirmEmailLinkUseCase(
        auth_port=get_accounts_repository(),
        token_port=get_token_service(),
        code_secret=_get_settings().jwt_access_secret,
    )


def get_telegram_link_status_use_case() -> GetTelegramLinkStatusUseCase:
    return GetTelegramLinkStatusUseCase(
        auth_port=get_accounts_repository(),
        token_port=get_token_service(),
    )


def get_telegram_bot_confirm_use_case() -> ConfirmTelegramLinkFromBotUseCase:
    return ConfirmTelegramLinkFromBotUseCase(
        auth_port=get_accounts_repository(),
        token_port=get_token_service(),
        bot_link_secret=_get_settings().telegram_bot_link_secret,
    )


def get_current_user(
    authorization: str | None = Header(default=None),
    token_port: TokenPort = Depends(get_token_service),
    session_port: AuthPort | None = Depends(get_access_session_port),
) -> AuthUser:
    if not authorization:
        raise UnauthorizedError("Missing access token.")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Invalid authorization header.")

    payload = token_port.decode_access_token(token=token)

    if session_port is not None:
        session = session_port.get_session_by_id(session_id=payload.session_id)
        if session is None or session.user_id != payload.user_id or not session.is_active(utcnow()):
            raise InvalidAccessTokenError("Session is no longer active.")

    return AuthUser(user_id=payload.user_id, role=payload.role, session_id=payload.session_id)


def require_roles(*roles: UserRole):
    allowed = set(roles)

    def _dependency(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if allowed and user.role not in allowed:
            raise ForbiddenError()
        return user

    return _dependency
