from __future__ import annotations

from authgate.application.dto.auth import AuthUser, AuthUserOutput
from authgate.application.ports.auth_port import AuthPort
from authgate.domain.exceptions import UnauthorizedError

from .auth_common import build_auth_user_output


class GetMeUseCase:
    def __init__(self, *, auth_port: AuthPort):
        self._auth_port = auth_port

    def execute(self, *, user: AuthUser) -> AuthUserOutput:
        record = self._auth_port.get_user_by_id(user_id=user.user_id)
        if record is None:
            raise UnauthorizedError("User no longer exists.")
        return build_auth_user_output(record)
