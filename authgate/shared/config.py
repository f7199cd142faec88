from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _int(name: str, default: int, errors: list[str], *, minimum: int = 1) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        errors.append(f"{name} must be an integer.")
        return default
    if value < minimum:
        errors.append(f"{name} must be >= {minimum}.")
    return value


def _float(name: str, default: float, errors: list[str]) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        errors.append(f"{name} must be a number.")
        return default
    if value <= 0:
        errors.append(f"{name} must be > 0.")
    return value


def _bool(name: str, default: bool, errors: list[str]) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    errors.append(f"{name} must be a boolean.")
    return default


def _csv(name: str) -> tuple[str, ...]:
    raw = _env(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    log_level: str
    postgres_dsn: str
    jwt_access_secret: str
    jwt_refresh_secret: str
    access_token_ttl_seconds: int
    refresh_token_ttl_days: int
    access_token_session_check: bool
    google_client_id: str | None
    google_http_timeout_seconds: float
    telegram_bot_token: str | None
    telegram_init_data_max_age_seconds: int
    telegram_bot_link_secret: str | None
    account_link_token_ttl_minutes: int
    rate_limit_enabled: bool
    rate_limit_fail_open: bool
    redis_url: str | None
    redis_timeout_seconds: float
    frontend_origin: str | None
    cors_allow_origins: tuple[str, ...]


def get_settings() -> Settings:
    errors: list[str] = []

    jwt_access_secret = _env("JWT_ACCESS_SECRET", "")
    jwt_refresh_secret = _env("JWT_REFRESH_SECRET", "")
    if len(jwt_access_secret) < 32:
        errors.append("JWT_ACCESS_SECRET must have at least 32 characters.")
    if len(jwt_refresh_secret) < 32:
        errors.append("JWT_REFRESH_SECRET must have at least 32 characters.")
    if jwt_access_secret and jwt_access_secret == jwt_refresh_secret:
        errors.append("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ.")

    frontend_origin = _env("FRONTEND_ORIGIN")
    cors_allow_origins = _csv("CORS_ALLOW_ORIGINS") or ((frontend_origin,) if frontend_origin else ())

    settings = Settings(
        log_level=_env("LOG_LEVEL", "info").upper(),
        postgres_dsn=_env("POSTGRES_DSN", ""),
        jwt_access_secret=jwt_access_secret,
        jwt_refresh_secret=jwt_refresh_secret,
        access_token_ttl_seconds=_int("ACCESS_TOKEN_TTL_SECONDS", 900, errors, minimum=60),
        refresh_token_ttl_days=_int("REFRESH_TOKEN_TTL_DAYS", 30, errors),
        access_token_session_check=_bool("ACCESS_TOKEN_SESSION_CHECK", False, errors),
        google_client_id=_env("GOOGLE_CLIENT_ID"),
        google_http_timeout_seconds=_float("GOOGLE_HTTP_TIMEOUT_SECONDS", 5.0, errors),
        telegram_bot_token=_env("TELEGRAM_BOT_TOKEN"),
        telegram_init_data_max_age_seconds=_int("TELEGRAM_INIT_DATA_MAX_AGE_SECONDS", 86400, errors),
        telegram_bot_link_secret=_env("TELEGRAM_BOT_LINK_SECRET"),
        account_link_token_ttl_minutes=_int("ACCOUNT_LINK_TOKEN_TTL_MINUTES", 10, errors),
        rate_limit_enabled=_bool("RATE_LIMIT_ENABLED", True, errors),
        rate_limit_fail_open=_bool("RATE_LIMIT_FAIL_OPEN", True, errors),
        redis_url=_env("REDIS_URL"),
        redis_timeout_seconds=_float("REDIS_TIMEOUT_SECONDS", 2.0, errors),
        frontend_origin=frontend_origin,
        cors_allow_origins=cors_allow_origins,
    )
    if errors:
        raise ValueError("Invalid configuration: " + " ".join(errors))
    return settings
