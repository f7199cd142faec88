from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import UniqueConstraint
from sqlalchemy.exc import IntegrityError

from authgate.domain.exceptions import EmailAlreadyInUseError, IdentityAlreadyLinkedError
from authgate.infrastructure.db.engine import Base
from authgate.infrastructure.db.models import accounts  # noqa: F401
from authgate.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository


NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _repository_with_rowcount(rowcount: int):
    engine = MagicMock()
    engine.begin.return_value.__exit__.return_value = False
    conn = engine.begin.return_value.__enter__.return_value
    conn.execute.return_value.rowcount = rowcount
    return SqlAccountsRepository(engine), engine, conn


def test_revoke_session_reports_whether_row_was_updated():
    repository, _, conn = _repository_with_rowcount(1)

    assert repository.revoke_session(session_id="s1", revoked_at=NOW, replaced_by_session_id="s2") is True
    statement, params = conn.execute.call_args.args
    assert "revoked_at IS NULL" in str(statement)
    assert params == {"session_id": "s1", "revoked_at": NOW, "replaced_by_session_id": "s2"}

    conn.execute.return_value.rowcount = 0
    assert repository.revoke_session(session_id="s1", revoked_at=NOW) is False


def test_consume_link_token_is_conditional():
    repository, _, conn = _repository_with_rowcount(0)

    assert repository.consume_link_token(link_token_id="t1", consumed_at=NOW) is False
    statement, _ = conn.execute.call_args.args
    assert "consumed_at IS NULL" in str(statement)


def test_transaction_shares_one_connection():
    repository, engine, conn = _repository_with_rowcount(1)

    def _work(tx_repository):
        tx_repository.delete_sessions_for_user(user_id="u1")
        tx_repository.delete_link_tokens_for_user(user_id="u1")
        tx_repository.delete_user(user_id="u1")
        return "done"

    assert repository.execute_in_transaction(_work) == "done"
    assert engine.begin.call_count == 1
    assert conn.execute.call_count == 3


def test_declared_tables_match_repository_queries():
    tables = Base.metadata.tables

    assert {"public.users", "public.identities", "public.auth_sessions", "public.account_link_tokens"} <= set(tables)
    identities = tables["public.identities"]
    unique_columns = {
        tuple(column.name for column in constraint.columns)
        for constraint in identities.constraints
        if isinstance(constraint, UniqueConstraint)
    }
    assert ("provider", "provider_user_id") in unique_columns
    assert "metadata" in identities.c
    assert "replaced_by_session_id" in tables["public.auth_sessions"].c


def _unique_violation(constraint: str) -> IntegrityError:
    return IntegrityError(
        "INSERT ...",
        {},
        Exception(f'duplicate key value violates unique constraint "{constraint}"'),
    )


def test_concurrent_identity_insert_maps_to_already_linked():
    repository, _, conn = _repository_with_rowcount(1)
    conn.execute.side_effect = _unique_violation("uq_identities_provider_user_id")

    with pytest.raises(IdentityAlreadyLinkedError):
        repository.create_identity(
            identity_id="i1",
            user_id="u1",
            provider="GOOGLE",
            provider_user_id="sub-1",
            email=None,
            password_hash=None,
            metadata=None,
            created_at=NOW,
        )


def test_concurrent_email_claim_maps_to_email_in_use():
    repository, _, conn = _repository_with_rowcount(1)
    conn.execute.side_effect = _unique_violation("users_email_key")

    with pytest.raises(EmailAlreadyInUseError):
        repository.create_user(
            user_id="u1",
            email="race@example.com",
            email_verified_at=None,
            role="USER",
            created_at=NOW,
        )
    with pytest.raises(EmailAlreadyInUseError):
        repository.update_user_email(user_id="u1", email="race@example.com", email_verified_at=None, updated_at=NOW)


def test_unique_violation_inside_transaction_propagates_as_domain_error():
    repository, engine, conn = _repository_with_rowcount(1)
    conn.execute.side_effect = _unique_violation("uq_identities_provider_user_id")

    def _work(tx_repository):
        return tx_repository.create_identity(
            identity_id="i1",
            user_id="u1",
            provider="TELEGRAM",
            provider_user_id="42",
            email=None,
            password_hash=None,
            metadata={"username": "alice"},
            created_at=NOW,
        )

    with pytest.raises(IdentityAlreadyLinkedError):
        repository.execute_in_transaction(_work)
    assert engine.begin.call_count == 1
