from __future__ import annotations

from uuid import uuid4

from authgate.application.dto.auth import AuthTokensOutput, RegisterEmailInput
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.password_hasher_port import PasswordHasherPort
from authgate.application.ports.token_port import TokenPort
from authgate.domain.entities.user import User
from authgate.domain.exceptions import (
    EmailAlreadyInUseError,
    EmailAlreadyRegisteredError,
    EmailRequiredError,
    PasswordRequiredError,
)

from .auth_common import issue_tokens, normalize_email, utcnow


class RegisterEmailUseCase:
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

    def execute(self, command: RegisterEmailInput) -> AuthTokensOutput:
        email = normalize_email(command.email)
        if not email:
            raise EmailRequiredError("email is required.")
        if not command.password:
            raise PasswordRequiredError("password is required.")

        if self._auth_port.get_identity_by_provider_user_id(provider="EMAIL", provider_user_id=email) is not None:
            raise EmailAlreadyRegisteredError()

        password_hash = self._password_hasher.hash(command.password)

        def _tx(auth_port: AuthPort) -> User:
            if auth_port.get_user_by_email(email=email) is not None:
                raise EmailAlreadyInUseError()

            now = utcnow()
            user = auth_port.create_user(
                user_id=str(uuid4()),
                email=email,
                email_verified_at=None,
                role="USER",
                created_at=now,
            )
            auth_port.create_identity(
                identity_id=str(uuid4()),
                user_id=user.id,
                provider="EMAIL",
                provider_user_id=email,
                email=email,
                password_hash=password_hash,
                metadata=None,
                created_at=now,
            )
            return user

        user = self._auth_port.execute_in_transaction(_tx)
        return issue_tokens(
            user=user,
            auth_port=self._auth_port,
            token_port=self._token_port,
            user_agent=command.user_agent,
            ip=command.ip,
        )
