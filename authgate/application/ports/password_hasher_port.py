from __future__ import annotations

from typing import Protocol


class PasswordHasherPort(Protocol):
    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, stored_hash: str) -> bool:
        ...

    def verify_and_update(self, password: str, stored_hash: str) -> tuple[bool, str | None]:
        """Retorna (valido, novo_hash) quando o hash armazenado usa esquema obsoleto."""
        ...
