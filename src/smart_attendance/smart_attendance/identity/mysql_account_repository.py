from __future__ import annotations

import json
from typing import Optional

from ..common.datetime_utils import as_utc, to_db
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Account, AuthSession
from .repository import AccountRepository, AuthSessionRepository


def _to_account(row: dict) -> Account:
    attributes = row.get("attributes") or {}
    if isinstance(attributes, (str, bytes)):
        attributes = json.loads(attributes)
    return Account(
        user_id=str(row["user_id"]),
        email=row["email"],
        password_hash=row["password_hash"],
        attributes=dict(attributes),
        created_at=as_utc(row["created_at"]) if row.get("created_at") else None,
    )


class MySQLAccountRepository(AccountRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_email(self, email: str) -> Optional[Account]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT user_id, email, password_hash, attributes, created_at FROM accounts WHERE email=%s",
                (email,),
            )
            row = fetchone(cur)
            return _to_account(row) if row else None

    def get_by_id(self, user_id: str) -> Optional[Account]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT user_id, email, password_hash, attributes, created_at FROM accounts WHERE user_id=%s",
                (user_id,),
            )
            row = fetchone(cur)
            return _to_account(row) if row else None

    def create(self, account: Account) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO accounts (user_id, email, password_hash, attributes, created_at)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (
                    account.user_id,
                    account.email,
                    account.password_hash,
                    json.dumps(account.attributes),
                    to_db(account.created_at) if account.created_at else None,
                ),
            )

    def delete(self, user_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM accounts WHERE user_id=%s", (user_id,))
            return cur.rowcount > 0


class MySQLAuthSessionRepository(AuthSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def save(self, session: AuthSession) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO auth_sessions (access_token, user_id, created_at, expires_at)
                VALUES (%s, %s, %s, %s)
                """,
                (session.access_token, session.user_id, to_db(session.created_at), to_db(session.expires_at)),
            )

    def get(self, access_token: str) -> Optional[AuthSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT s.access_token, s.user_id, a.email, s.created_at, s.expires_at
                FROM auth_sessions s
                JOIN accounts a ON a.user_id = s.user_id
                WHERE s.access_token=%s
                """,
                (access_token,),
            )
            row = fetchone(cur)
            if not row:
                return None
            return AuthSession(
                access_token=row["access_token"],
                user_id=str(row["user_id"]),
                email=row["email"],
                created_at=as_utc(row["created_at"]),
                expires_at=as_utc(row["expires_at"]),
            )

    def delete(self, access_token: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM auth_sessions WHERE access_token=%s", (access_token,))
            return cur.rowcount > 0
