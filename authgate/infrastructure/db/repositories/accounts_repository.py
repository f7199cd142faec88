from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from authgate.application.ports.auth_port import AuthPort
from authgate.domain.exceptions import EmailAlreadyInUseError, IdentityAlreadyLinkedError
from authgate.infrastructure.db.mappers.accounts_mapper import (
    map_row_to_auth_session,
    map_row_to_identity,
    map_row_to_link_token,
    map_row_to_user,
)


T = TypeVar("T")

_USER_COLUMNS = "id, email, email_verified_at, role, created_at, updated_at"
_IDENTITY_COLUMNS = "id, user_id, provider, provider_user_id, email, password_hash, metadata, created_at"
_SESSION_COLUMNS = (
    "id, user_id, refresh_token_hash, expires_at, revoked_at, replaced_by_session_id, user_agent, ip, created_at"
)
_LINK_TOKEN_COLUMNS = "id, user_id, token_hash, expires_at, consumed_at, created_at"


def _dump_metadata(metadata: dict[str, Any] | None) -> str | None:
    if metadata is None:
        return None
    return json.dumps(metadata, default=str)


class SqlAccountsRepository(AuthPort):
    """AuthPort em PostgreSQL.

    Fora de `execute_in_transaction` cada escrita abre sua propria transacao;
    dentro dela todas as chamadas compartilham a mesma conexao.
    """

    def __init__(self, engine: Engine, connection: Connection | None = None):
        self._engine = engine
        self._connection = connection

    def execute_in_transaction(self, fn: Callable[[AuthPort], T]) -> T:
        if self._connection is not None:
            return fn(self)
        with self._engine.begin() as conn:
            return fn(SqlAccountsRepository(self._engine, connection=conn))

    @contextmanager
    def _read(self) -> Iterator[Connection]:
        if self._connection is not None:
            yield self._connection
            return
        with self._engine.connect() as conn:
            yield conn

    @contextmanager
    def _write(self) -> Iterator[Connection]:
        if self._connection is not None:
            yield self._connection
            return
        with self._engine.begin() as conn:
            yield conn

    # users

    def get_user_by_id(self, *, user_id: str):
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM public.users
            WHERE id = :user_id
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def get_user_by_email(self, *, email: str):
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM public.users
            WHERE lower(email) = :email
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"email": email.lower()}).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def create_user(
        self,
        *,
        user_id: str,
        email: str | None,
        email_verified_at: datetime | None,
        role: str,
        created_at: datetime,
    ):
        sql = f"""
            INSERT INTO public.users (
                id, email, email_verified_at, role, created_at, updated_at
            ) VALUES (
                :id, :email, :email_verified_at, :role, :created_at, :created_at
            )
            RETURNING {_USER_COLUMNS}
        """
        params = {
            "id": user_id,
            "email": email,
            "email_verified_at": email_verified_at,
            "role": role,
            "created_at": created_at,
        }
        try:
            with self._write() as conn:
                row = conn.execute(text(sql), params).mappings().one()
        except IntegrityError as exc:
            # users.email e unico
            raise EmailAlreadyInUseError() from exc
        return map_row_to_user(row)

    def update_user_email(
        self,
        *,
        user_id: str,
        email: str,
        email_verified_at: datetime | None,
        updated_at: datetime,
    ) -> None:
        sql = """
            UPDATE public.users
            SET email = :email,
                email_verified_at = :email_verified_at,
                updated_at = :updated_at
            WHERE id = :user_id
        """
        try:
            with self._write() as conn:
                conn.execute(
                    text(sql),
                    {
                        "user_id": user_id,
                        "email": email,
                        "email_verified_at": email_verified_at,
                        "updated_at": updated_at,
                    },
                )
        except IntegrityError as exc:
            raise EmailAlreadyInUseError() from exc

    def update_user_email_verified_at(self, *, user_id: str, email_verified_at: datetime) -> None:
        sql = """
            UPDATE public.users
            SET email_verified_at = :email_verified_at,
                updated_at = now()
            WHERE id = :user_id
        """
        with self._write() as conn:
            conn.execute(text(sql), {"user_id": user_id, "email_verified_at": email_verified_at})

    def delete_user(self, *, user_id: str) -> None:
        with self._write() as conn:
            conn.execute(text("DELETE FROM public.users WHERE id = :user_id"), {"user_id": user_id})

    # identities

    def create_identity(
        self,
        *,
        identity_id: str,
        user_id: str,
        provider: str,
        provider_user_id: str,
        email: str | None,
        password_hash: str | None,
        metadata: dict[str, Any] | None,
        created_at: datetime,
    ):
        sql = f"""
            INSERT INTO public.identities (
                id, user_id, provider, provider_user_id, email, password_hash, metadata, created_at
            ) VALUES (
                :id, :user_id, :provider, :provider_user_id, :email, :password_hash,
                CAST(:metadata AS JSONB), :created_at
            )
            RETURNING {_IDENTITY_COLUMNS}
        """
        try:
            with self._write() as conn:
                row = conn.execute(
                    text(sql),
                    {
                        "id": identity_id,
                        "user_id": user_id,
                        "provider": provider,
                        "provider_user_id": provider_user_id,
                        "email": email,
                        "password_hash": password_hash,
                        "metadata": _dump_metadata(metadata),
                        "created_at": created_at,
                    },
                ).mappings().one()
        except IntegrityError as exc:
            # (provider, provider_user_id) e unico
            raise IdentityAlreadyLinkedError() from exc
        return map_row_to_identity(row)

    def get_identity_by_provider_user_id(self, *, provider: str, provider_user_id: str):
        sql = f"""
            SELECT {_IDENTITY_COLUMNS}
            FROM public.identities
            WHERE provider = :provider
              AND provider_user_id = :provider_user_id
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(
                text(sql),
                {
                    "provider": provider,
                    "provider_user_id": provider_user_id,
                },
            ).mappings().first()
        if row is None:
            return None
        return map_row_to_identity(row)

    def get_identity_for_user_provider(self, *, user_id: str, provider: str):
        sql = f"""
            SELECT {_IDENTITY_COLUMNS}
            FROM public.identities
            WHERE user_id = :user_id
              AND provider = :provider
            ORDER BY created_at ASC
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(
                text(sql),
                {
                    "user_id": user_id,
                    "provider": provider,
                },
            ).mappings().first()
        if row is None:
            return None
        return map_row_to_identity(row)

    def list_identities_for_user(self, *, user_id: str):
        sql = f"""
            SELECT {_IDENTITY_COLUMNS}
            FROM public.identities
            WHERE user_id = :user_id
            ORDER BY created_at ASC
        """
        with self._read() as conn:
            rows = conn.execute(text(sql), {"user_id": user_id}).mappings().all()
        return [map_row_to_identity(row) for row in rows]

    def update_identity_password_hash(self, *, identity_id: str, password_hash: str) -> None:
        sql = """
            UPDATE public.identities
            SET password_hash = :password_hash
            WHERE id = :identity_id
        """
        with self._write() as conn:
            conn.execute(text(sql), {"identity_id": identity_id, "password_hash": password_hash})

    def reassign_identity(
        self,
        *,
        identity_id: str,
        user_id: str,
        metadata: dict[str, Any] | None,
    ) -> None:
        sql = """
            UPDATE public.identities
            SET user_id = :user_id,
                metadata = CAST(:metadata AS JSONB)
            WHERE id = :identity_id
        """
        with self._write() as conn:
            conn.execute(
                text(sql),
                {
                    "identity_id": identity_id,
                    "user_id": user_id,
                    "metadata": _dump_metadata(metadata),
                },
            )

    # sessions

    def create_session(
        self,
        *,
        session_id: str,
        user_id: str,
        refresh_token_hash: str,
        expires_at: datetime,
        user_agent: str | None,
        ip: str | None,
        created_at: datetime,
    ):
        sql = f"""
            INSERT INTO public.auth_sessions (
                id, user_id, refresh_token_hash, expires_at, user_agent, ip, created_at
            ) VALUES (
                :id, :user_id, :refresh_token_hash, :expires_at, :user_agent, :ip, :created_at
            )
            RETURNING {_SESSION_COLUMNS}
        """
        with self._write() as conn:
            row = conn.execute(
                text(sql),
                {
                    "id": session_id,
                    "user_id": user_id,
                    "refresh_token_hash": refresh_token_hash,
                    "expires_at": expires_at,
                    "user_agent": user_agent,
                    "ip": ip,
                    "created_at": created_at,
                },
            ).mappings().one()
        return map_row_to_auth_session(row)

    def get_session_by_id(self, *, session_id: str):
        sql = f"""
            SELECT {_SESSION_COLUMNS}
            FROM public.auth_sessions
            WHERE id = :session_id
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"session_id": session_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_auth_session(row)

    def get_session_by_refresh_token_hash(self, *, refresh_token_hash: str):
        sql = f"""
            SELECT {_SESSION_COLUMNS}
            FROM public.auth_sessions
            WHERE refresh_token_hash = :refresh_token_hash
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"refresh_token_hash": refresh_token_hash}).mappings().first()
        if row is None:
            return None
        return map_row_to_auth_session(row)

    def revoke_session(
        self,
        *,
        session_id: str,
        revoked_at: datetime,
        replaced_by_session_id: str | None = None,
    ) -> bool:
        sql = """
            UPDATE public.auth_sessions
            SET revoked_at = :revoked_at,
                replaced_by_session_id = :replaced_by_session_id
            WHERE id = :session_id
              AND revoked_at IS NULL
        """
        with self._write() as conn:
            result = conn.execute(
                text(sql),
                {
                    "session_id": session_id,
                    "revoked_at": revoked_at,
                    "replaced_by_session_id": replaced_by_session_id,
                },
            )
        return result.rowcount == 1

    def delete_sessions_for_user(self, *, user_id: str) -> None:
        with self._write() as conn:
            conn.execute(text("DELETE FROM public.auth_sessions WHERE user_id = :user_id"), {"user_id": user_id})

    # link tokens

    def create_link_token(
        self,
        *,
        link_token_id: str,
        user_id: str,
        token_hash: str,
        expires_at: datetime,
        created_at: datetime,
    ):
        sql = f"""
            INSERT INTO public.account_link_tokens (
                id, user_id, token_hash, expires_at, created_at
            ) VALUES (
                :id, :user_id, :token_hash, :expires_at, :created_at
            )
            RETURNING {_LINK_TOKEN_COLUMNS}
        """
        with self._write() as conn:
            row = conn.execute(
                text(sql),
                {
                    "id": link_token_id,
                    "user_id": user_id,
                    "token_hash": token_hash,
                    "expires_at": expires_at,
                    "created_at": created_at,
                },
            ).mappings().one()
        return map_row_to_link_token(row)

    def get_link_token_by_hash(self, *, token_hash: str):
        sql = f"""
            SELECT {_LINK_TOKEN_COLUMNS}
            FROM public.account_link_tokens
            WHERE token_hash = :token_hash
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"token_hash": token_hash}).mappings().first()
        if row is None:
            return None
        return map_row_to_link_token(row)

    def consume_link_token(self, *, link_token_id: str, consumed_at: datetime) -> bool:
        sql = """
            UPDATE public.account_link_tokens
            SET consumed_at = :consumed_at
            WHERE id = :link_token_id
              AND consumed_at IS NULL
        """
        with self._write() as conn:
            result = conn.execute(text(sql), {"link_token_id": link_token_id, "consumed_at": consumed_at})
        return result.rowcount == 1

    def delete_link_tokens_for_user(self, *, user_id: str) -> None:
        with self._write() as conn:
            conn.execute(
                text("DELETE FROM public.account_link_tokens WHERE user_id = :user_id"),
                {"user_id": user_id},
            )
