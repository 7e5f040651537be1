from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Sequence

from ..common.datetime_utils import as_utc, to_db
from ..core.enums import Action
from ..database.access_policy import AccessPolicy, Principal
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import LoginAttempt
from .repository import LoginAttemptRepository


class MySQLLoginAttemptRepository(LoginAttemptRepository):
    def __init__(self, conn_factory: DatabaseConnection, policy: AccessPolicy):
        self._conn_factory = conn_factory
        self._policy = policy

    def add(self, attempt: LoginAttempt, *, principal: Principal) -> None:
        self._policy.check(principal, "login_attempts", Action.INSERT, asdict(attempt))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO login_attempts (attempt_id, identifier, attempt_time, success, ip_address)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (
                    attempt.attempt_id,
                    attempt.identifier,
                    to_db(attempt.attempt_time),
                    1 if attempt.success else 0,
                    attempt.ip_address,
                ),
            )

    def list_since(self, identifier: str, since: datetime, *, principal: Principal) -> Sequence[LoginAttempt]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT attempt_id, identifier, attempt_time, success, ip_address
                FROM login_attempts
                WHERE identifier=%s AND attempt_time >= %s
                ORDER BY attempt_time DESC
                """,
                (identifier, to_db(since)),
            )
            rows = fetchall(cur)

        return [
            LoginAttempt(
                attempt_id=str(r["attempt_id"]),
                identifier=r["identifier"],
                attempt_time=as_utc(r["attempt_time"]),
                success=bool(r["success"]),
                ip_address=r.get("ip_address"),
            )
            for r in self._policy.filter_rows(principal, "login_attempts", rows)
        ]

    def delete_older_than(self, cutoff: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM login_attempts WHERE attempt_time < %s", (to_db(cutoff),))
            return int(cur.rowcount or 0)
