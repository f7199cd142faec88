from __future__ import annotations

import logging
from datetime import datetime, timezone

from authgate.application.dto.link import EmailLinkMessage
from authgate.infrastructure.email.logging_email_sender import LoggingEmailSender


def test_logs_masked_recipient_and_code(caplog):
    message = EmailLinkMessage(
        to="alice@example.com",
        code="123456",
        expires_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        confirm_url=None,
    )

    with caplog.at_level(logging.INFO, logger="authgate.infrastructure.email.logging_email_sender"):
        LoggingEmailSender().send_email_link_verification(message)

    assert "to=a***e@example.com" in caplog.text
    assert "code=123456" in caplog.text
    assert "alice@example.com" not in caplog.text
