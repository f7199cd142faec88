from __future__ import annotations

import unittest
from datetime import datetime, timezone
from uuid import UUID

from authgate.infrastructure.db.mappers.accounts_mapper import (
    map_row_to_auth_session,
    map_row_to_identity,
    map_row_to_link_token,
    map_row_to_user,
)


NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)
USER_UUID = UUID("5f0c6f5e-7d1a-4c35-9f52-6fd9e2a0b001")


class AccountsMapperTests(unittest.TestCase):
    def test_map_row_to_user_stringifies_uuid(self):
        user = map_row_to_user(
            {
                "id": USER_UUID,
                "email": None,
                "email_verified_at": None,
                "role": "USER",
                "created_at": NOW,
                "updated_at": NOW,
            }
        )

        self.assertEqual(user.id, str(USER_UUID))
        self.assertIsNone(user.email)
        self.assertEqual(user.role, "USER")

    def test_map_row_to_identity_parses_metadata(self):
        base = {
            "id": "identity-1",
            "user_id": USER_UUID,
            "provider": "TELEGRAM",
            "provider_user_id": "42",
            "email": None,
            "password_hash": None,
            "created_at": NOW,
        }

        from_json_text = map_row_to_identity({**base, "metadata": '{"username": "alice"}'})
        from_dict = map_row_to_identity({**base, "metadata": {"username": "bob"}})
        without_metadata = map_row_to_identity({**base, "metadata": None})

        self.assertEqual(from_json_text.metadata, {"username": "alice"})
        self.assertEqual(from_dict.metadata, {"username": "bob"})
        self.assertEqual(without_metadata.metadata, {})
        self.assertEqual(from_dict.user_id, str(USER_UUID))

    def test_map_row_to_auth_session_keeps_replacement(self):
        session = map_row_to_auth_session(
            {
                "id": "session-1",
                "user_id": USER_UUID,
                "refresh_token_hash": "abc",
                "expires_at": NOW,
                "revoked_at": NOW,
                "replaced_by_session_id": UUID("5f0c6f5e-7d1a-4c35-9f52-6fd9e2a0b002"),
                "user_agent": "pytest",
                "ip": "127.0.0.1",
                "created_at": NOW,
            }
        )

        self.assertEqual(session.replaced_by_session_id, "5f0c6f5e-7d1a-4c35-9f52-6fd9e2a0b002")
        self.assertFalse(session.is_active(NOW))

    def test_map_row_to_link_token(self):
        link_token = map_row_to_link_token(
            {
                "id": "token-1",
                "user_id": USER_UUID,
                "token_hash": "hash",
                "expires_at": NOW,
                "consumed_at": None,
                "created_at": NOW,
            }
        )

        self.assertEqual(link_token.token_hash, "hash")
        self.assertIsNone(link_token.consumed_at)


if __name__ == "__main__":
    unittest.main()
