from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmailRegisterRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=8, max_length=128)


class EmailLoginRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class GoogleLoginRequest(CamelModel):
    id_token: str = Field(..., min_length=1)


class TelegramLoginRequest(CamelModel):
    init_data_raw: str = Field(..., min_length=1, max_length=8192)


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1, max_length=512)


class AuthUserResponse(CamelModel):
    id: str
    role: str
    email: str | None = None


class AuthTokenResponse(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int
    user: AuthUserResponse


class LogoutResponse(CamelModel):
    success: bool
