from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from authgate.application.dto.link import LINK_PROVIDER_TO_IDENTITY, LinkConfirmInput, LinkConfirmOutput
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.google_oauth_port import GoogleOauthPort
from authgate.application.ports.password_hasher_port import PasswordHasherPort
from authgate.application.ports.telegram_auth_port import TelegramAuthPort
from authgate.application.ports.token_port import TokenPort
from authgate.domain.entities.user import IdentityProvider
from authgate.domain.exceptions import (
    EmailAlreadyInUseError,
    EmailRequiredError,
    IdentityAlreadyLinkedError,
    PasswordRequiredError,
    ProviderUserIdRequiredError,
)

from .auth_common import (
    consume_link_token,
    merge_link_metadata,
    normalize_optional_email,
    resolve_active_link_token,
    utcnow,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ResolvedIdentity:
    provider: IdentityProvider
    provider_user_id: str
    email: str | None
    password_hash: str | None
    provider_metadata: dict[str, Any] | None


class ConfirmLinkUseCase:
    """Vincula uma nova identidade ao usuario dono do link token.

    A prova do provedor (id_token do Google, init data do Telegram) tem
    precedencia sobre o provider_user_id informado pelo cliente.
    """

    def __init__(
        self,
        *,
        auth_port: AuthPort,
        token_port: TokenPort,
        password_hasher: PasswordHasherPort,
        google_oauth_port: GoogleOauthPort,
        telegram_auth_port: TelegramAuthPort,
    ):
        self._auth_port = auth_port
        self._token_port = token_port
        self._password_hasher = password_hasher
        self._google_oauth_port = google_oauth_port
        self._telegram_auth_port = telegram_auth_port

    def execute(self, *, user_id: str, command: LinkConfirmInput) -> LinkConfirmOutput:
        link_token = resolve_active_link_token(
            auth_port=self._auth_port,
            token_port=self._token_port,
            raw_token=command.link_token,
            user_id=user_id,
        )
        resolved = self._resolve_identity(command)

        existing = self._auth_port.get_identity_by_provider_user_id(
            provider=resolved.provider,
            provider_user_id=resolved.provider_user_id,
        )
        if existing is not None:
            if existing.user_id != user_id:
                raise IdentityAlreadyLinkedError()
            raise IdentityAlreadyLinkedError("This identity is already linked.")

        if self._auth_port.get_identity_for_user_provider(user_id=user_id, provider=resolved.provider) is not None:
            raise IdentityAlreadyLinkedError(f"{resolved.provider.title()} is already linked.")

        if resolved.provider == "EMAIL":
            email_owner = self._auth_port.get_user_by_email(email=resolved.provider_user_id)
            if email_owner is not None and email_owner.id != user_id:
                raise EmailAlreadyInUseError()

        metadata = merge_link_metadata(command.metadata, resolved.provider_metadata)

        def _tx(auth_port: AuthPort) -> None:
            now = utcnow()
            auth_port.create_identity(
                identity_id=str(uuid4()),
                user_id=user_id,
                provider=resolved.provider,
                provider_user_id=resolved.provider_user_id,
                email=resolved.email,
                password_hash=resolved.password_hash,
                metadata=metadata,
                created_at=now,
            )
            if resolved.provider == "EMAIL":
                user = auth_port.get_user_by_id(user_id=user_id)
                if user is not None and not user.email:
                    auth_port.update_user_email(
                        user_id=user_id,
                        email=resolved.provider_user_id,
                        email_verified_at=None,
                        updated_at=now,
                    )
            consume_link_token(auth_port=auth_port, link_token=link_token)

        self._auth_port.execute_in_transaction(_tx)
        logger.info("confirm_link: linked user_id=%s provider=%s", user_id, resolved.provider)
        return LinkConfirmOutput(linked=True, provider=command.provider)

    def _resolve_identity(self, command: LinkConfirmInput) -> _ResolvedIdentity:
        provider = LINK_PROVIDER_TO_IDENTITY[command.provider]
        email = normalize_optional_email(command.email)

        if provider == "EMAIL":
            if not email:
                raise EmailRequiredError()
            if not command.password:
                raise PasswordRequiredError()
            return _ResolvedIdentity(
                provider=provider,
                provider_user_id=email,
                email=email,
                password_hash=self._password_hasher.hash(command.password),
                provider_metadata=None,
            )

        if provider == "GOOGLE" and command.id_token and command.id_token.strip():
            google_identity = self._google_oauth_port.verify_id_token(id_token=command.id_token.strip())
            return _ResolvedIdentity(
                provider=provider,
                provider_user_id=google_identity.subject,
                email=email or normalize_optional_email(google_identity.email),
                password_hash=None,
                provider_metadata=google_identity.profile_metadata(),
            )

        if provider == "TELEGRAM" and command.init_data_raw and command.init_data_raw.strip():
            telegram_user = self._telegram_auth_port.verify_init_data(init_data_raw=command.init_data_raw)
            return _ResolvedIdentity(
                provider=provider,
                provider_user_id=telegram_user.provider_user_id,
                email=email,
                password_hash=None,
                provider_metadata=telegram_user.profile_metadata(),
            )

        provider_user_id = (command.provider_user_id or "").strip()
        if not provider_user_id:
            raise ProviderUserIdRequiredError()
        return _ResolvedIdentity(
            provider=provider,
            provider_user_id=provider_user_id,
            email=email,
            password_hash=None,
            provider_metadata=None,
        )
