from __future__ import annotations

import hashlib
import hmac
import json
import re
import time
from dataclasses import dataclass
from urllib.parse import parse_qsl

from authgate.domain.exceptions import (
    InvalidPayloadError,
    InvalidSignatureError,
    PayloadExpiredError,
    ProviderDisabledError,
)


HASH_PATTERN = re.compile(r"[a-f0-9]{64}")
AUTH_DATE_PATTERN = re.compile(r"[0-9]+")
WEB_APP_DATA_KEY = b"WebAppData"


@dataclass(frozen=True)
class TelegramUser:
    id: int
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    language_code: str | None = None
    is_premium: bool | None = None

    @property
    def provider_user_id(self) -> str:
        return str(self.id)

    def profile_metadata(self) -> dict:
        return {
            "username": self.username,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "languageCode": self.language_code,
            "isPremium": self.is_premium,
        }


def build_data_check_string(fields: list[tuple[str, str]]) -> str:
    """Campos exceto `hash`, ordenados pela chave em bytes, `key=value` unidos por `\\n`."""
    entries = [(key, value) for key, value in fields if key != "hash"]
    entries.sort(key=lambda entry: entry[0].encode("utf-8"))
    return "\n".join(f"{key}={value}" for key, value in entries)


def compute_init_data_hash(data_check_string: str, secret: str) -> str:
    secret_key = hmac.new(WEB_APP_DATA_KEY, secret.encode("utf-8"), hashlib.sha256).digest()
    return hmac.new(secret_key, data_check_string.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_signed_launch_payload(
    raw: str,
    *,
    secret: str | None,
    max_age_seconds: int,
    now: int | None = None,
) -> TelegramUser:
    if not secret:
        raise ProviderDisabledError("Telegram auth is not configured.")

    fields = parse_qsl(raw or "", keep_blank_values=True)
    values: dict[str, str] = {}
    for key, value in fields:
        values.setdefault(key, value)

    provided_hash = values.get("hash")
    if not provided_hash or not HASH_PATTERN.fullmatch(provided_hash):
        raise InvalidSignatureError("Telegram init data hash is missing or invalid.")

    auth_date = _parse_auth_date(values.get("auth_date"))
    now_seconds = int(time.time()) if now is None else now
    if now_seconds - auth_date > max_age_seconds:
        raise PayloadExpiredError()

    expected_hash = compute_init_data_hash(build_data_check_string(fields), secret)
    expected_bytes = bytes.fromhex(expected_hash)
    provided_bytes = bytes.fromhex(provided_hash)
    if len(expected_bytes) != len(provided_bytes) or not hmac.compare_digest(expected_bytes, provided_bytes):
        raise InvalidSignatureError()

    return _parse_user(values.get("user"))


def _parse_auth_date(raw_value: str | None) -> int:
    if not raw_value or not AUTH_DATE_PATTERN.fullmatch(raw_value):
        raise InvalidPayloadError("Telegram auth_date is invalid.")
    auth_date = int(raw_value)
    if auth_date <= 0:
        raise InvalidPayloadError("Telegram auth_date is invalid.")
    return auth_date


def _parse_user(raw_value: str | None) -> TelegramUser:
    if not raw_value:
        raise InvalidPayloadError("Telegram user payload is missing.")
    try:
        payload = json.loads(raw_value)
    except ValueError as exc:
        raise InvalidPayloadError("Telegram user payload is invalid JSON.") from exc

    if not isinstance(payload, dict):
        raise InvalidPayloadError("Telegram user payload is invalid.")

    user_id = payload.get("id")
    if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id == 0:
        raise InvalidPayloadError("Telegram user id is missing.")

    return TelegramUser(
        id=user_id,
        username=_optional_str(payload.get("username")),
        first_name=_optional_str(payload.get("first_name")),
        last_name=_optional_str(payload.get("last_name")),
        language_code=_optional_str(payload.get("language_code")),
        is_premium=payload.get("is_premium") if isinstance(payload.get("is_premium"), bool) else None,
    )


def _optional_str(value) -> str | None:
    return value if isinstance(value, str) else None
