from __future__ import annotations

from uuid import uuid4

from authgate.application.dto.auth import AuthTokensOutput, LoginTelegramInput
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.telegram_auth_port import TelegramAuthPort
from authgate.application.ports.token_port import TokenPort
from authgate.domain.entities.user import User
from authgate.domain.exceptions import InvalidPayloadError

from .auth_common import issue_tokens, merge_link_metadata, utcnow


class LoginTelegramUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        telegram_auth_port: TelegramAuthPort,
        token_port: TokenPort,
    ):
        self._auth_port = auth_port
        self._telegram_auth_port = telegram_auth_port
        self._token_port = token_port

    def execute(self, command: LoginTelegramInput) -> AuthTokensOutput:
        telegram_user = self._telegram_auth_port.verify_init_data(init_data_raw=command.init_data_raw)

        identity = self._auth_port.get_identity_by_provider_user_id(
            provider="TELEGRAM",
            provider_user_id=telegram_user.provider_user_id,
        )
        if identity is not None:
            user = self._auth_port.get_user_by_id(user_id=identity.user_id)
            if user is None:
                raise InvalidPayloadError("Telegram identity is not bound to an account.")
        else:

            def _tx(auth_port: AuthPort) -> User:
                now = utcnow()
                created = auth_port.create_user(
                    user_id=str(uuid4()),
                    email=None,
                    email_verified_at=None,
                    role="USER",
                    created_at=now,
                )
                auth_port.create_identity(
                    identity_id=str(uuid4()),
                    user_id=created.id,
                    provider="TELEGRAM",
                    provider_user_id=telegram_user.provider_user_id,
                    email=None,
                    password_hash=None,
                    metadata=merge_link_metadata(None, telegram_user.profile_metadata()),
                    created_at=now,
                )
                return created

            user = self._auth_port.execute_in_transaction(_tx)

        return issue_tokens(
            user=user,
            auth_port=self._auth_port,
            token_port=self._token_port,
            user_agent=command.user_agent,
            ip=command.ip,
        )
