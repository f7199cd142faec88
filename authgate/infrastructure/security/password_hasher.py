from __future__ import annotations

from passlib.context import CryptContext

from authgate.application.ports.password_hasher_port import PasswordHasherPort


class Argon2PasswordHasher(PasswordHasherPort):
    def __init__(self):
        # argon2 is the active scheme; bcrypt hashes still verify and get upgraded on login.
        self._ctx = CryptContext(
            schemes=["argon2", "bcrypt"],
            deprecated="auto",
        )

    def hash(self, password: str) -> str:
        return self._ctx.hash(password)

    def verify(self, password: str, stored_hash: str) -> bool:
        try:
            return self._ctx.verify(password, stored_hash)
        except ValueError:
            # unknown or malformed hash format
            return False

    def verify_and_update(self, password: str, stored_hash: str) -> tuple[bool, str | None]:
        try:
            verified, replacement_hash = self._ctx.verify_and_update(password, stored_hash)
        except ValueError:
            return False, None
        return bool(verified), replacement_hash
