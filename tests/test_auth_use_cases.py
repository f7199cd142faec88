from __future__ import annotations

import pytest

from authgate.application.dto.auth import (
    AuthUser,
    GoogleIdentityInfo,
    LoginEmailInput,
    LoginGoogleInput,
    LoginTelegramInput,
    RegisterEmailInput,
)
from authgate.application.use_cases.get_me import GetMeUseCase
from authgate.application.use_cases.login_email import LoginEmailUseCase
from authgate.application.use_cases.login_google import LoginGoogleUseCase
from authgate.application.use_cases.login_telegram import LoginTelegramUseCase
from authgate.application.use_cases.register_email import RegisterEmailUseCase
from authgate.domain.exceptions import (
    AccountLinkRequiredError,
    EmailAlreadyInUseError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    UnauthorizedError,
)
from authgate.domain.services.telegram_init_data import TelegramUser


class FakeTelegramAuthPort:
    def __init__(self, user: TelegramUser):
        self.user = user

    def verify_init_data(self, *, init_data_raw: str) -> TelegramUser:
        assert init_data_raw == "signed-payload"
        return self.user


class FakeUnverifiedGoogleOauthPort:
    def __init__(self, identity: GoogleIdentityInfo):
        self.identity = identity

    def verify_id_token(self, *, id_token: str) -> GoogleIdentityInfo:
        return self.identity


def _register(auth_port, password_hasher, token_port, email="User@Example.com", password="12345678"):
    use_case = RegisterEmailUseCase(auth_port=auth_port, password_hasher=password_hasher, token_port=token_port)
    return use_case.execute(RegisterEmailInput(email=email, password=password, user_agent="pytest", ip="1.2.3.4"))


def test_register_email_creates_user_identity_and_session(auth_port, password_hasher, token_port):
    output = _register(auth_port, password_hasher, token_port)

    assert output.user.email == "user@example.com"
    assert output.user.role == "USER"
    assert output.expires_in == 900
    identity = auth_port.get_identity_for_user_provider(user_id=output.user.id, provider="EMAIL")
    assert identity is not None
    assert identity.provider_user_id == "user@example.com"
    assert identity.password_hash == "hashed::12345678"

    session = auth_port.get_session_by_refresh_token_hash(refresh_token_hash=f"hash::{output.refresh_token}")
    assert session is not None
    assert session.user_agent == "pytest"
    assert session.ip == "1.2.3.4"
    assert output.access_token == f"access:{output.user.id}:USER:{session.id}"


def test_register_email_rejects_existing_identity(auth_port, password_hasher, token_port):
    _register(auth_port, password_hasher, token_port)

    with pytest.raises(EmailAlreadyRegisteredError):
        _register(auth_port, password_hasher, token_port, email="user@example.com")


def test_register_email_rejects_address_owned_by_other_user(auth_port, password_hasher, token_port, make_user):
    make_user("user-google", email="user@example.com")

    with pytest.raises(EmailAlreadyInUseError):
        _register(auth_port, password_hasher, token_port)

    assert list(auth_port.identities) == []


def test_login_email_returns_tokens(auth_port, password_hasher, token_port):
    registered = _register(auth_port, password_hasher, token_port)
    use_case = LoginEmailUseCase(auth_port=auth_port, password_hasher=password_hasher, token_port=token_port)

    output = use_case.execute(
        LoginEmailInput(email=" USER@example.com ", password="12345678", user_agent=None, ip=None)
    )

    assert output.user.id == registered.user.id
    assert output.refresh_token != registered.refresh_token


def test_login_email_invalid_password_and_unknown_email_share_error(auth_port, password_hasher, token_port):
    _register(auth_port, password_hasher, token_port)
    use_case = LoginEmailUseCase(auth_port=auth_port, password_hasher=password_hasher, token_port=token_port)

    with pytest.raises(InvalidCredentialsError):
        use_case.execute(LoginEmailInput(email="user@example.com", password="wrong-pass", user_agent=None, ip=None))
    with pytest.raises(InvalidCredentialsError):
        use_case.execute(LoginEmailInput(email="nobody@example.com", password="12345678", user_agent=None, ip=None))


def test_login_email_upgrades_legacy_hash(auth_port, password_hasher, token_port):
    registered = _register(auth_port, password_hasher, token_port)
    identity = auth_port.get_identity_for_user_provider(user_id=registered.user.id, provider="EMAIL")
    auth_port.update_identity_password_hash(identity_id=identity.id, password_hash="legacy::12345678")
    use_case = LoginEmailUseCase(auth_port=auth_port, password_hasher=password_hasher, token_port=token_port)

    use_case.execute(LoginEmailInput(email="user@example.com", password="12345678", user_agent=None, ip=None))

    assert auth_port.identities[identity.id].password_hash == "hashed::12345678"


def test_login_google_creates_user_with_verified_email(auth_port, token_port, google_oauth_port):
    use_case = LoginGoogleUseCase(auth_port=auth_port, google_oauth_port=google_oauth_port, token_port=token_port)

    output = use_case.execute(LoginGoogleInput(id_token="token-google", user_agent=None, ip=None))

    user = auth_port.get_user_by_id(user_id=output.user.id)
    assert user.email == "user@example.com"
    assert user.email_verified_at is not None
    identity = auth_port.get_identity_for_user_provider(user_id=user.id, provider="GOOGLE")
    assert identity.provider_user_id == "google-sub-1"
    assert identity.metadata["name"] == "Google User"
    assert "picture" not in identity.metadata


def test_login_google_reuses_existing_identity(auth_port, token_port, google_oauth_port):
    use_case = LoginGoogleUseCase(auth_port=auth_port, google_oauth_port=google_oauth_port, token_port=token_port)

    first = use_case.execute(LoginGoogleInput(id_token="token-google", user_agent=None, ip=None))
    second = use_case.execute(LoginGoogleInput(id_token="token-google", user_agent=None, ip=None))

    assert first.user.id == second.user.id
    assert len(auth_port.users) == 1


def test_login_google_requires_explicit_link_for_existing_email(
    auth_port, password_hasher, token_port, google_oauth_port
):
    _register(auth_port, password_hasher, token_port, email="user@example.com")
    use_case = LoginGoogleUseCase(auth_port=auth_port, google_oauth_port=google_oauth_port, token_port=token_port)

    with pytest.raises(AccountLinkRequiredError):
        use_case.execute(LoginGoogleInput(id_token="token-google", user_agent=None, ip=None))

    assert len(auth_port.users) == 1


def test_login_google_without_verified_email_leaves_email_unverified(auth_port, token_port):
    google = FakeUnverifiedGoogleOauthPort(
        GoogleIdentityInfo(
            subject="google-sub-2",
            email="other@example.com",
            email_verified=False,
            name=None,
            picture=None,
            locale=None,
        )
    )
    use_case = LoginGoogleUseCase(auth_port=auth_port, google_oauth_port=google, token_port=token_port)

    output = use_case.execute(LoginGoogleInput(id_token="token", user_agent=None, ip=None))

    assert auth_port.get_user_by_id(user_id=output.user.id).email_verified_at is None


def test_login_telegram_creates_then_reuses_user(auth_port, token_port):
    telegram = FakeTelegramAuthPort(TelegramUser(id=4242, username="tg_user", first_name="Tg"))
    use_case = LoginTelegramUseCase(auth_port=auth_port, telegram_auth_port=telegram, token_port=token_port)

    first = use_case.execute(LoginTelegramInput(init_data_raw="signed-payload", user_agent=None, ip=None))
    second = use_case.execute(LoginTelegramInput(init_data_raw="signed-payload", user_agent=None, ip=None))

    assert first.user.id == second.user.id
    assert first.user.email is None
    identity = auth_port.get_identity_by_provider_user_id(provider="TELEGRAM", provider_user_id="4242")
    assert identity.metadata == {"username": "tg_user", "firstName": "Tg"}


def test_get_me_returns_current_user(auth_port, make_user):
    make_user("user-1", email="alice@example.com", role="ADMIN")

    output = GetMeUseCase(auth_port=auth_port).execute(
        user=AuthUser(user_id="user-1", role="ADMIN", session_id="session-1")
    )

    assert output.email == "alice@example.com"
    assert output.role == "ADMIN"


def test_get_me_rejects_deleted_user(auth_port):
    with pytest.raises(UnauthorizedError):
        GetMeUseCase(auth_port=auth_port).execute(user=AuthUser(user_id="ghost", role="USER", session_id="s"))
