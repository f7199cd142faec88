from __future__ import annotations

import logging
from uuid import uuid4

from authgate.application.dto.auth import AuthTokensOutput, LoginGoogleInput
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.google_oauth_port import GoogleOauthPort
from authgate.application.ports.token_port import TokenPort
from authgate.domain.entities.user import User
from authgate.domain.exceptions import AccountLinkRequiredError, InvalidProviderTokenError

from .auth_common import issue_tokens, merge_link_metadata, normalize_optional_email, utcnow


logger = logging.getLogger(__name__)


class LoginGoogleUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        google_oauth_port: GoogleOauthPort,
        token_port: TokenPort,
    ):
        self._auth_port = auth_port
        self._google_oauth_port = google_oauth_port
        self._token_port = token_port

    def execute(self, command: LoginGoogleInput) -> AuthTokensOutput:
        google_identity = self._google_oauth_port.verify_id_token(id_token=command.id_token)
        email = normalize_optional_email(google_identity.email)

        identity = self._auth_port.get_identity_by_provider_user_id(
            provider="GOOGLE",
            provider_user_id=google_identity.subject,
        )
        if identity is not None:
            user = self._auth_port.get_user_by_id(user_id=identity.user_id)
            if user is None:
                raise InvalidProviderTokenError("Google identity is not bound to an account.")
            return self._issue(user, command)

        if email and self._auth_port.get_user_by_email(email=email) is not None:
            logger.info("login_google: account_link_required subject=%s", google_identity.subject)
            raise AccountLinkRequiredError()

        def _tx(auth_port: AuthPort) -> User:
            now = utcnow()
            user = auth_port.create_user(
                user_id=str(uuid4()),
                email=email,
                email_verified_at=now if email and google_identity.email_verified else None,
                role="USER",
                created_at=now,
            )
            auth_port.create_identity(
                identity_id=str(uuid4()),
                user_id=user.id,
                provider="GOOGLE",
                provider_user_id=google_identity.subject,
                email=email,
                password_hash=None,
                metadata=merge_link_metadata(None, google_identity.profile_metadata()),
                created_at=now,
            )
            return user

        user = self._auth_port.execute_in_transaction(_tx)
        return self._issue(user, command)

    def _issue(self, user: User, command: LoginGoogleInput) -> AuthTokensOutput:
        return issue_tokens(
            user=user,
            auth_port=self._auth_port,
            token_port=self._token_port,
            user_agent=command.user_agent,
            ip=command.ip,
        )
