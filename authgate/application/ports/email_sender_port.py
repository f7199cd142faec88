from __future__ import annotations

from typing import Protocol

from authgate.application.dto.link import EmailLinkMessage


class EmailSenderPort(Protocol):
    def send_email_link_verification(self, message: EmailLinkMessage) -> None:
        ...
