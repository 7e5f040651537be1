from __future__ import annotations

import uuid
from typing import Optional, Sequence

from ..common.datetime_utils import as_utc
from ..core.enums import Action
from ..database.access_policy import AccessPolicy, OwnedStudent, Principal
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Student
from .repository import StudentRepository

_COLUMNS = "student_id, user_id, roll_number, name, email, face_embedding, voice_sample, created_at"


def _to_student(row: dict) -> Student:
    return Student(
        student_id=str(row["student_id"]),
        user_id=str(row["user_id"]) if row.get("user_id") else None,
        roll_number=row["roll_number"],
        name=row["name"],
        email=row.get("email"),
        face_embedding=row.get("face_embedding"),
        voice_sample=row.get("voice_sample"),
        created_at=as_utc(row["created_at"]) if row.get("created_at") else None,
    )


class MySQLOwnershipResolver:
    """Resolves which students an account owns, for the access policy."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def students_for_user(self, user_id: str) -> Sequence[OwnedStudent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT student_id, roll_number, email FROM students WHERE user_id=%s", (user_id,))
            return [
                OwnedStudent(student_id=str(r["student_id"]), roll_number=r["roll_number"], email=r.get("email"))
                for r in fetchall(cur)
            ]


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection, policy: AccessPolicy):
        self._conn_factory = conn_factory
        self._policy = policy
        self._owners = MySQLOwnershipResolver(conn_factory)

    def _get_one(self, where: str, value: str, principal: Principal) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE {where}=%s", (value,))
            row = fetchone(cur)
        if not row or not self._policy.allows(principal, "students", Action.SELECT, row):
            return None
        return _to_student(row)

    def get_by_roll_number(self, roll_number: str, *, principal: Principal) -> Optional[Student]:
        return self._get_one("roll_number", roll_number, principal)

    def get_by_user_id(self, user_id: str, *, principal: Principal) -> Optional[Student]:
        return self._get_one("user_id", user_id, principal)

    def upsert_from_signup(self, *, user_id: str, roll_number: str, name: str, email: str) -> Student:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO students (student_id, user_id, roll_number, name, email)
                VALUES (%s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE user_id=VALUES(user_id), name=VALUES(name), email=VALUES(email)
                """,
                (str(uuid.uuid4()), user_id, roll_number, name, email),
            )
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE roll_number=%s", (roll_number,))
            return _to_student(fetchone(cur))

    def students_for_user(self, user_id: str) -> Sequence[OwnedStudent]:
        return self._owners.students_for_user(user_id)
