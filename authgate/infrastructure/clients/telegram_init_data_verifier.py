from __future__ import annotations

import logging
from typing import Callable

from authgate.application.ports.telegram_auth_port import TelegramAuthPort
from authgate.domain.exceptions import DomainError
from authgate.domain.services.telegram_init_data import TelegramUser, verify_signed_launch_payload


logger = logging.getLogger(__name__)


class TelegramInitDataVerifier(TelegramAuthPort):
    def __init__(
        self,
        *,
        bot_token: str | None,
        max_age_seconds: int,
        clock: Callable[[], int] | None = None,
    ):
        self._bot_token = bot_token
        self._max_age_seconds = max_age_seconds
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return bool(self._bot_token)

    def verify_init_data(self, *, init_data_raw: str) -> TelegramUser:
        now = self._clock() if self._clock is not None else None
        try:
            return verify_signed_launch_payload(
                init_data_raw,
                secret=self._bot_token,
                max_age_seconds=self._max_age_seconds,
                now=now,
            )
        except DomainError as exc:
            logger.info("telegram_init_data_verifier: rejected code=%s", exc.code)
            raise
