from __future__ import annotations

from typing import Protocol

from authgate.domain.services.telegram_init_data import TelegramUser


class TelegramAuthPort(Protocol):
    def verify_init_data(self, *, init_data_raw: str) -> TelegramUser:
        ...
