from __future__ import annotations

import logging
from uuid import uuid4

from authgate.application.dto.link import (
    EmailLinkConfirmInput,
    EmailLinkMessage,
    EmailLinkRequestInput,
    EmailLinkRequestOutput,
    LinkConfirmOutput,
)
from authgate.application.ports.auth_port import AuthPort
from authgate.application.ports.email_sender_port import EmailSenderPort
from authgate.application.ports.token_port import TokenPort
from authgate.domain.exceptions import (
    EmailAlreadyInUseError,
    EmailDeliveryError,
    EmailRequiredError,
    IdentityAlreadyLinkedError,
    InvalidEmailLinkCodeError,
)
from authgate.domain.services.email_link import (
    build_email_link_confirm_url,
    codes_match,
    create_email_link_code,
    mask_email,
)

from .auth_common import consume_link_token, normalize_email, resolve_active_link_token, utcnow


logger = logging.getLogger(__name__)


def _require_email(raw_email: str) -> str:
    email = normalize_email(raw_email)
    if not email:
        raise EmailRequiredError()
    return email


class RequestEmailLinkUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        token_port: TokenPort,
        email_sender: EmailSenderPort,
        code_secret: str,
        frontend_origin: str | None = None,
    ):
        self._auth_port = auth_port
        self._token_port = token_port
        self._email_sender = email_sender
        self._code_secret = code_secret
        self._frontend_origin = frontend_origin

    def execute(self, *, user_id: str, command: EmailLinkRequestInput) -> EmailLinkRequestOutput:
        email = _require_email(command.email)
        link_token = resolve_active_link_token(
            auth_port=self._auth_port,
            token_port=self._token_port,
            raw_token=command.link_token,
            user_id=user_id,
        )
        self._assert_email_can_be_linked(user_id=user_id, email=email)

        raw_token = command.link_token.strip()
        code = create_email_link_code(
            secret=self._code_secret,
            user_id=user_id,
            link_token=raw_token,
            email=email,
        )
        message = EmailLinkMessage(
            to=email,
            code=code,
            expires_at=link_token.expires_at,
            confirm_url=build_email_link_confirm_url(
                frontend_origin=self._frontend_origin,
                link_token=raw_token,
                email=email,
                code=code,
            ),
        )
        try:
            self._email_sender.send_email_link_verification(message)
        except Exception as exc:
            logger.error("request_email_link: delivery_failed to=%s error=%s", mask_email(email), exc)
            raise EmailDeliveryError() from exc

        return EmailLinkRequestOutput(
            sent=True,
            provider="email",
            email=mask_email(email),
            expires_at=link_token.expires_at,
        )

    def _assert_email_can_be_linked(self, *, user_id: str, email: str) -> None:
        identity = self._auth_port.get_identity_by_provider_user_id(provider="EMAIL", provider_user_id=email)
        if identity is not None:
            if identity.user_id != user_id:
                raise EmailAlreadyInUseError("Email is already linked to another account.")
            raise IdentityAlreadyLinkedError("This email is already linked.")

        owner = self._auth_port.get_user_by_email(email=email)
        if owner is not None and owner.id != user_id:
            raise EmailAlreadyInUseError()


class ConfirmEmailLinkUseCase:
    """Confere o codigo enviado por email e vincula a identidade EMAIL."""

    def __init__(self, *, auth_port: AuthPort, token_port: TokenPort, code_secret: str):
        self._auth_port = auth_port
        self._token_port = token_port
        self._code_secret = code_secret

    def execute(self, *, user_id: str, command: EmailLinkConfirmInput) -> LinkConfirmOutput:
        email = _require_email(command.email)
        link_token = resolve_active_link_token(
            auth_port=self._auth_port,
            token_port=self._token_port,
            raw_token=command.link_token,
            user_id=user_id,
        )
        expected_code = create_email_link_code(
            secret=self._code_secret,
            user_id=user_id,
            link_token=command.link_token.strip(),
            email=email,
        )
        if not codes_match(expected_code, command.code.strip()):
            raise InvalidEmailLinkCodeError()

        def _tx(auth_port: AuthPort) -> None:
            now = utcnow()
            identity = auth_port.get_identity_by_provider_user_id(provider="EMAIL", provider_user_id=email)
            if identity is not None and identity.user_id != user_id:
                raise EmailAlreadyInUseError("Email is already linked to another account.")

            owner = auth_port.get_user_by_email(email=email)
            if owner is not None and owner.id != user_id:
                raise EmailAlreadyInUseError()

            if identity is None:
                auth_port.create_identity(
                    identity_id=str(uuid4()),
                    user_id=user_id,
                    provider="EMAIL",
                    provider_user_id=email,
                    email=email,
                    password_hash=None,
                    metadata={"linkedVia": "email_verification_code"},
                    created_at=now,
                )

            user = auth_port.get_user_by_id(user_id=user_id)
            if user is not None:
                if not user.email:
                    auth_port.update_user_email(
                        user_id=user_id,
                        email=email,
                        email_verified_at=now,
                        updated_at=now,
                    )
                elif user.email == email and user.email_verified_at is None:
                    auth_port.update_user_email_verified_at(user_id=user_id, email_verified_at=now)

            consume_link_token(auth_port=auth_port, link_token=link_token)

        self._auth_port.execute_in_transaction(_tx)
        logger.info("confirm_email_link: linked user_id=%s", user_id)
        return LinkConfirmOutput(linked=True, provider="email")
