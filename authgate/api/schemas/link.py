from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from authgate.api.schemas.auth import CamelModel


LinkProviderField = Literal["email", "google", "telegram"]


class LinkStartResponse(CamelModel):
    link_token: str
    expires_at: datetime


class LinkConfirmRequest(CamelModel):
    link_token: str = Field(..., min_length=16, max_length=512)
    provider: LinkProviderField
    provider_user_id: str | None = Field(default=None, min_length=1, max_length=256)
    email: str | None = Field(default=None, max_length=320)
    password: str | None = Field(default=None, min_length=8, max_length=128)
    id_token: str | None = Field(default=None, max_length=8192)
    init_data_raw: str | None = Field(default=None, max_length=8192)
    metadata: dict[str, Any] | None = None


class LinkConfirmResponse(CamelModel):
    linked: bool
    provider: LinkProviderField


class LinkProvidersResponse(CamelModel):
    linked_providers: list[LinkProviderField]


class LinkEmailRequest(CamelModel):
    link_token: str = Field(..., min_length=16, max_length=512)
    email: str = Field(..., min_length=3, max_length=320)


class LinkEmailRequestResponse(CamelModel):
    sent: bool
    provider: LinkProviderField
    email: str
    expires_at: datetime


class LinkEmailConfirmRequest(CamelModel):
    link_token: str = Field(..., min_length=16, max_length=512)
    email: str = Field(..., min_length=3, max_length=320)
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class LinkTelegramStatusRequest(CamelModel):
    link_token: str = Field(..., min_length=16, max_length=512)


class LinkTelegramStatusResponse(CamelModel):
    status: Literal["pending", "linked", "expired", "invalid"]


class LinkTelegramBotConfirmRequest(CamelModel):
    link_token: str = Field(..., min_length=16, max_length=512)
    telegram_user_id: str = Field(..., min_length=1, max_length=64)
    username: str | None = Field(default=None, max_length=64)
    first_name: str | None = Field(default=None, max_length=128)
    last_name: str | None = Field(default=None, max_length=128)
    language_code: str | None = Field(default=None, max_length=32)
