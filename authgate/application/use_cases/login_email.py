from __future__ import annotations

import logging

from authgate.application.dto.auth import AuthTokensOutput, LoginEmailInput
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.password_hasher_port import PasswordHasherPort
from authgate.application.ports.token_port import TokenPort
from authgate.domain.exceptions import InvalidCredentialsError

from .auth_common import issue_tokens, normalize_email


logger = logging.getLogger(__name__)


class LoginEmailUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        password_hasher: PasswordHasherPort,
        token_port: TokenPort,
    ):
        self._auth_port = auth_port
        self._password_hasher = password_hasher
        self._token_port = token_port

    def execute(self, command: LoginEmailInput) -> AuthTokensOutput:
        email = normalize_email(command.email)
        identity = self._auth_port.get_identity_by_provider_user_id(provider="EMAIL", provider_user_id=email)
        if identity is None or not identity.password_hash:
            raise InvalidCredentialsError()

        verified, replacement_hash = self._password_hasher.verify_and_update(
            command.password,
            identity.password_hash,
        )
        if not verified:
            raise InvalidCredentialsError()

        user = self._auth_port.get_user_by_id(user_id=identity.user_id)
        if user is None:
            raise InvalidCredentialsError()

        if replacement_hash:
            self._auth_port.update_identity_password_hash(
                identity_id=identity.id,
                password_hash=replacement_hash,
            )
            logger.info("login_email: password_hash_upgraded identity_id=%s", identity.id)

        return issue_tokens(
            user=user,
            auth_port=self._auth_port,
            token_port=self._token_port,
            user_agent=command.user_agent,
            ip=command.ip,
        )
