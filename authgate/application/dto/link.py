from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from authgate.domain.entities.user import IdentityProvider


LinkProvider = Literal["email", "google", "telegram"]
TelegramLinkStatus = Literal["pending", "linked", "expired", "invalid"]

LINK_PROVIDER_TO_IDENTITY: dict[str, IdentityProvider] = {
    "email": "EMAIL",
    "google": "GOOGLE",
    "telegram": "TELEGRAM",
}
IDENTITY_TO_LINK_PROVIDER: dict[str, LinkProvider] = {
    value: key for key, value in LINK_PROVIDER_TO_IDENTITY.items()
}


@dataclass(frozen=True)
class StartLinkOutput:
    link_token: str
    expires_at: datetime


@dataclass(frozen=True)
class LinkConfirmInput:
    link_token: str
    provider: LinkProvider
    provider_user_id: str | None = None
    email: str | None = None
    password: str | None = None
    id_token: str | None = None
    init_data_raw: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class LinkConfirmOutput:
    linked: bool
    provider: LinkProvider


@dataclass(frozen=True)
class LinkProvidersOutput:
    linked_providers: list[LinkProvider] = field(default_factory=list)


@dataclass(frozen=True)
class EmailLinkRequestInput:
    link_token: str
    email: str


@dataclass(frozen=True)
class EmailLinkRequestOutput:
    sent: bool
    provider: LinkProvider
    email: str
    expires_at: datetime


@dataclass(frozen=True)
class EmailLinkConfirmInput:
    link_token: str
    email: str
    code: str


@dataclass(frozen=True)
class TelegramBotConfirmInput:
    link_token: str
    telegram_user_id: str
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    language_code: str | None = None


@dataclass(frozen=True)
class EmailLinkMessage:
    to: str
    code: str
    expires_at: datetime
    confirm_url: str | None
