from __future__ import annotations

from dataclasses import dataclass

from authgate.domain.entities.user import UserRole


@dataclass(frozen=True)
class AuthUserOutput:
    id: str
    role: UserRole
    email: str | None


@dataclass(frozen=True)
class RegisterEmailInput:
    email: str
    password: str
    user_agent: str | None
    ip: str | None


@dataclass(frozen=True)
class LoginEmailInput:
    email: str
    password: str
    user_agent: str | None
    ip: str | None


@dataclass(frozen=True)
class LoginGoogleInput:
    id_token: str
    user_agent: str | None
    ip: str | None


@dataclass(frozen=True)
class LoginTelegramInput:
    init_data_raw: str
    user_agent: str | None
    ip: str | None


@dataclass(frozen=True)
class RefreshSessionInput:
    refresh_token: str
    user_agent: str | None
    ip: str | None


@dataclass(frozen=True)
class LogoutInput:
    refresh_token: str


@dataclass(frozen=True)
class LogoutOutput:
    success: bool


@dataclass(frozen=True)
class AuthTokensOutput:
    user: AuthUserOutput
    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True)
class AccessTokenPayload:
    user_id: str
    role: UserRole
    session_id: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class AuthUser:
    user_id: str
    role: UserRole
    session_id: str


@dataclass(frozen=True)
class GoogleIdentityInfo:
    subject: str
    email: str | None
    email_verified: bool | None
    name: str | None
    picture: str | None
    locale: str | None

    def profile_metadata(self) -> dict:
        return {
            "name": self.name,
            "picture": self.picture,
            "locale": self.locale,
            "emailVerified": self.email_verified,
        }
