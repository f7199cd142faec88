from __future__ import annotations

from typing import Literal

from authgate.domain.entities.rate_limit import RateLimitContext, RateLimitRule


RateLimitPolicy = Literal[
    "telegram_verify_init_data",
    "email_register",
    "email_login",
    "google_callback",
    "refresh",
    "logout",
    "link_start",
    "link_confirm",
    "link_email_request",
    "link_email_confirm",
    "link_telegram_status",
    "link_telegram_bot_confirm",
]

MINUTE_MS = 60_000


def _ip(context: RateLimitContext) -> str | None:
    return context.ip


def _user(context: RateLimitContext) -> str | None:
    return context.user_id


def _email(context: RateLimitContext) -> str | None:
    return context.email


def _refresh_token(context: RateLimitContext) -> str | None:
    return context.refresh_token_hash


def _ip_email(context: RateLimitContext) -> str | None:
    if not context.email:
        return None
    return f"{context.ip}:{context.email}"


def _user_email(context: RateLimitContext) -> str | None:
    if not context.user_id or not context.email:
        return None
    return f"{context.user_id}:{context.email}"


AUTH_GLOBAL_RULES: tuple[RateLimitRule, ...] = (
    RateLimitRule(id="auth_global_ip", limit=120, window_ms=MINUTE_MS, key=_ip),
)

POLICY_RULES: dict[str, tuple[RateLimitRule, ...]] = {
    "telegram_verify_init_data": (
        RateLimitRule(id="telegram_verify_ip", limit=20, window_ms=MINUTE_MS, key=_ip),
    ),
    "email_register": (
        RateLimitRule(id="email_register_ip_email", limit=3, window_ms=15 * MINUTE_MS, key=_ip_email),
        RateLimitRule(id="email_register_ip", limit=10, window_ms=60 * MINUTE_MS, key=_ip),
    ),
    "email_login": (
        RateLimitRule(id="email_login_ip_email", limit=5, window_ms=MINUTE_MS, key=_ip_email),
        RateLimitRule(id="email_login_ip", limit=20, window_ms=15 * MINUTE_MS, key=_ip),
    ),
    "google_callback": (
        RateLimitRule(id="google_callback_ip", limit=10, window_ms=MINUTE_MS, key=_ip),
    ),
    "refresh": (
        RateLimitRule(id="refresh_token", limit=30, window_ms=15 * MINUTE_MS, key=_refresh_token),
        RateLimitRule(id="refresh_ip", limit=60, window_ms=15 * MINUTE_MS, key=_ip),
    ),
    "logout": (
        RateLimitRule(id="logout_ip", limit=60, window_ms=15 * MINUTE_MS, key=_ip),
    ),
    "link_start": (
        RateLimitRule(id="link_start_user", limit=10, window_ms=15 * MINUTE_MS, key=_user),
    ),
    "link_confirm": (
        RateLimitRule(id="link_confirm_user", limit=10, window_ms=15 * MINUTE_MS, key=_user),
    ),
    "link_email_request": (
        RateLimitRule(id="link_email_request_user", limit=3, window_ms=15 * MINUTE_MS, key=_user),
        RateLimitRule(id="link_email_request_email", limit=3, window_ms=15 * MINUTE_MS, key=_email),
        RateLimitRule(id="link_email_request_cooldown", limit=1, window_ms=MINUTE_MS, key=_user_email),
    ),
    "link_email_confirm": (
        RateLimitRule(id="link_email_confirm_user", limit=6, window_ms=15 * MINUTE_MS, key=_user),
        RateLimitRule(id="link_email_confirm_ip", limit=20, window_ms=15 * MINUTE_MS, key=_ip),
    ),
    "link_telegram_status": (
        RateLimitRule(id="link_telegram_status_user", limit=60, window_ms=15 * MINUTE_MS, key=_user),
    ),
    "link_telegram_bot_confirm": (
        RateLimitRule(id="link_telegram_bot_confirm_ip", limit=30, window_ms=15 * MINUTE_MS, key=_ip),
    ),
}


def rules_for_policy(policy: str) -> tuple[RateLimitRule, ...]:
    return AUTH_GLOBAL_RULES + POLICY_RULES.get(policy, ())
