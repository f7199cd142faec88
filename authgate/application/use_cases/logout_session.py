from __future__ import annotations

from authgate.application.dto.auth import LogoutInput, LogoutOutput
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.token_port import TokenPort

from .auth_common import utcnow


class LogoutSessionUseCase:
    def __init__(self, *, auth_port: AuthPort, token_port: TokenPort):
        self._auth_port = auth_port
        self._token_port = token_port

    def execute(self, command: LogoutInput) -> LogoutOutput:
        token = command.refresh_token.strip()
        if token:
            session = self._auth_port.get_session_by_refresh_token_hash(
                refresh_token_hash=self._token_port.hash_token(token=token),
            )
            if session is not None and session.revoked_at is None:
                self._auth_port.revoke_session(session_id=session.id, revoked_at=utcnow())
        return LogoutOutput(success=True)
