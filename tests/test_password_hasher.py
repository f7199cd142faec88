from __future__ import annotations

from passlib.context import CryptContext

from authgate.infrastructure.security.password_hasher import Argon2PasswordHasher


def test_hash_uses_argon2_and_verifies():
    hasher = Argon2PasswordHasher()

    stored = hasher.hash("correct horse battery")

    assert stored.startswith("$argon2")
    assert hasher.verify("correct horse battery", stored) is True
    assert hasher.verify("wrong", stored) is False


def test_bcrypt_hash_is_upgraded_on_verify():
    hasher = Argon2PasswordHasher()
    legacy = CryptContext(schemes=["bcrypt"]).hash("legacy-password")

    verified, replacement = hasher.verify_and_update("legacy-password", legacy)

    assert verified is True
    assert replacement is not None and replacement.startswith("$argon2")


def test_current_hash_needs_no_upgrade():
    hasher = Argon2PasswordHasher()
    stored = hasher.hash("fresh-password")

    assert hasher.verify_and_update("fresh-password", stored) == (True, None)


def test_malformed_hash_never_verifies():
    hasher = Argon2PasswordHasher()

    assert hasher.verify("anything", "not-a-hash") is False
    assert hasher.verify_and_update("anything", "not-a-hash") == (False, None)
