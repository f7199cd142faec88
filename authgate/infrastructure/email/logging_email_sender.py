from __future__ import annotations

import logging

from authgate.application.dto.link import EmailLinkMessage
from authgate.application.ports.email_sender_port import EmailSenderPort
from authgate.domain.services.email_link import mask_email


logger = logging.getLogger(__name__)


class LoggingEmailSender(EmailSenderPort):
    """Sender de desenvolvimento: registra o codigo no log em vez de enviar."""

    def send_email_link_verification(self, message: EmailLinkMessage) -> None:
        logger.info(
            "logging_email_sender: email_link_verification to=%s code=%s expires_at=%s confirm_url=%s",
            mask_email(message.to),
            message.code,
            message.expires_at.isoformat(),
            message.confirm_url,
        )
