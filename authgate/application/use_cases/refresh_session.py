from __future__ import annotations

import logging

from authgate.application.dto.auth import AuthTokensOutput, RefreshSessionInput
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.token_port import TokenPort
from authgate.domain.exceptions import InvalidRefreshTokenError

from .auth_common import issue_session, utcnow


logger = logging.getLogger(__name__)


class RefreshSessionUseCase:
    """Troca o refresh token por um novo par; o anterior fica revogado."""

    def __init__(self, *, auth_port: AuthPort, token_port: TokenPort):
        self._auth_port = auth_port
        self._token_port = token_port

    def execute(self, command: RefreshSessionInput) -> AuthTokensOutput:
        token = command.refresh_token.strip()
        if not token:
            raise InvalidRefreshTokenError("Missing refresh token.")

        refresh_hash = self._token_port.hash_token(token=token)

        def _tx(auth_port: AuthPort) -> AuthTokensOutput:
            now = utcnow()
            session = auth_port.get_session_by_refresh_token_hash(refresh_token_hash=refresh_hash)
            if session is None or not session.is_active(now):
                raise InvalidRefreshTokenError()

            user = auth_port.get_user_by_id(user_id=session.user_id)
            if user is None:
                raise InvalidRefreshTokenError()

            new_session, tokens = issue_session(
                user=user,
                auth_port=auth_port,
                token_port=self._token_port,
                user_agent=command.user_agent,
                ip=command.ip,
            )
            # Perdeu a corrida para outra rotacao: desfaz a sessao nova.
            if not auth_port.revoke_session(
                session_id=session.id,
                revoked_at=now,
                replaced_by_session_id=new_session.id,
            ):
                logger.warning("refresh_session: rotation_conflict session_id=%s", session.id)
                raise InvalidRefreshTokenError()
            return tokens

        return self._auth_port.execute_in_transaction(_tx)
