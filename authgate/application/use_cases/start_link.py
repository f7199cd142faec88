from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

from authgate.application.dto.link import StartLinkOutput
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.token_port import TokenPort
from authgate.domain.exceptions import IdentityAlreadyLinkedError

from .auth_common import utcnow


class StartLinkUseCase:
    """Emite um link token de uso unico; o valor cru so e devolvido aqui."""

    def __init__(self, *, auth_port: AuthPort, token_port: TokenPort, ttl_minutes: int):
        self._auth_port = auth_port
        self._token_port = token_port
        self._ttl_minutes = ttl_minutes

    def execute(self, *, user_id: str) -> StartLinkOutput:
        now = utcnow()
        raw_token = self._token_port.generate_link_token()
        link_token = self._auth_port.create_link_token(
            link_token_id=str(uuid4()),
            user_id=user_id,
            token_hash=self._token_port.hash_token(token=raw_token),
            expires_at=now + timedelta(minutes=self._ttl_minutes),
            created_at=now,
        )
        return StartLinkOutput(link_token=raw_token, expires_at=link_token.expires_at)


class StartTelegramLinkUseCase:
    def __init__(self, *, auth_port: AuthPort, start_link_use_case: StartLinkUseCase):
        self._auth_port = auth_port
        self._start_link_use_case = start_link_use_case

    def execute(self, *, user_id: str) -> StartLinkOutput:
        if self._auth_port.get_identity_for_user_provider(user_id=user_id, provider="TELEGRAM") is not None:
            raise IdentityAlreadyLinkedError("Telegram is already linked.")
        return self._start_link_use_case.execute(user_id=user_id)
