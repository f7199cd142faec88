from __future__ import annotations

import hmac
import logging
from uuid import uuid4

from authgate.application.dto.link import LinkConfirmOutput, TelegramBotConfirmInput, TelegramLinkStatus
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.token_port import TokenPort
from authgate.domain.exceptions import (
    IdentityAlreadyLinkedError,
    InvalidBotLinkSecretError,
    ProviderDisabledError,
    ProviderUserIdRequiredError,
)

from .auth_common import consume_link_token, find_link_token, merge_link_metadata, resolve_active_link_token, utcnow


logger = logging.getLogger(__name__)


class GetTelegramLinkStatusUseCase:
    def __init__(self, *, auth_port: AuthPort, token_port: TokenPort):
        self._auth_port = auth_port
        self._token_port = token_port

    def execute(self, *, user_id: str, link_token: str) -> TelegramLinkStatus:
        token = find_link_token(auth_port=self._auth_port, token_port=self._token_port, raw_token=link_token)
        if token is None or token.user_id != user_id:
            return "invalid"

        if token.consumed_at is not None:
            identity = self._auth_port.get_identity_for_user_provider(user_id=user_id, provider="TELEGRAM")
            return "linked" if identity is not None else "invalid"

        if token.expires_at <= utcnow():
            return "expired"

        return "pending"


class ConfirmTelegramLinkFromBotUseCase:
    """Confirmacao enviada pelo bot do Telegram, autenticada por segredo compartilhado.

    Se a identidade do Telegram pertence a um usuario descartavel (criado no
    login pelo Telegram e sem outras identidades), ela e movida para o usuario
    do link token e o usuario antigo e removido.
    """

    def __init__(self, *, auth_port: AuthPort, token_port: TokenPort, bot_link_secret: str | None):
        self._auth_port = auth_port
        self._token_port = token_port
        self._bot_link_secret = (bot_link_secret or "").strip()

    def execute(self, command: TelegramBotConfirmInput, *, provided_secret: str | None) -> LinkConfirmOutput:
        self._check_secret(provided_secret)

        link_token = resolve_active_link_token(
            auth_port=self._auth_port,
            token_port=self._token_port,
            raw_token=command.link_token,
        )
        provider_user_id = command.telegram_user_id.strip()
        if not provider_user_id:
            raise ProviderUserIdRequiredError("Telegram user id is required.")

        incoming_metadata = {
            "username": command.username,
            "firstName": command.first_name,
            "lastName": command.last_name,
            "languageCode": command.language_code,
            "linkedVia": "bot_confirm_button",
        }
        target_user_id = link_token.user_id

        def _tx(auth_port: AuthPort) -> None:
            existing = auth_port.get_identity_by_provider_user_id(
                provider="TELEGRAM",
                provider_user_id=provider_user_id,
            )
            if existing is not None and existing.user_id == target_user_id:
                raise IdentityAlreadyLinkedError("This identity is already linked.")

            if auth_port.get_identity_for_user_provider(user_id=target_user_id, provider="TELEGRAM") is not None:
                raise IdentityAlreadyLinkedError("Telegram is already linked.")

            if existing is not None:
                source_identities = auth_port.list_identities_for_user(user_id=existing.user_id)
                if len(source_identities) != 1 or source_identities[0].id != existing.id:
                    raise IdentityAlreadyLinkedError()

                auth_port.reassign_identity(
                    identity_id=existing.id,
                    user_id=target_user_id,
                    metadata=merge_link_metadata(existing.metadata, incoming_metadata),
                )
                auth_port.delete_sessions_for_user(user_id=existing.user_id)
                auth_port.delete_link_tokens_for_user(user_id=existing.user_id)
                auth_port.delete_user(user_id=existing.user_id)
                logger.info(
                    "telegram_bot_confirm: identity_reassigned from_user_id=%s to_user_id=%s",
                    existing.user_id,
                    target_user_id,
                )
            else:
                auth_port.create_identity(
                    identity_id=str(uuid4()),
                    user_id=target_user_id,
                    provider="TELEGRAM",
                    provider_user_id=provider_user_id,
                    email=None,
                    password_hash=None,
                    metadata=merge_link_metadata(None, incoming_metadata),
                    created_at=utcnow(),
                )

            consume_link_token(auth_port=auth_port, link_token=link_token)

        self._auth_port.execute_in_transaction(_tx)
        return LinkConfirmOutput(linked=True, provider="telegram")

    def _check_secret(self, provided_secret: str | None) -> None:
        if not self._bot_link_secret:
            raise ProviderDisabledError("Bot link secret is not configured.")
        received = (provided_secret or "").strip()
        if not received or not hmac.compare_digest(received.encode("utf-8"), self._bot_link_secret.encode("utf-8")):
            raise InvalidBotLinkSecretError()
