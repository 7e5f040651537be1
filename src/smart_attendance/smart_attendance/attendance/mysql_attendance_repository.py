from __future__ import annotations

from typing import Optional, Sequence

from ..common.datetime_utils import as_utc, to_db
from ..core.enums import Action, ChangeType, VerificationMethod, VerificationStatus
from ..database.access_policy import AccessPolicy, Principal
from ..database.change_feed import ChangeEvent, ChangeFeed
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import AttendanceRecord
from .repository import AttendanceRepository


def _to_record(r: dict) -> AttendanceRecord:
    method = r.get("verification_method")
    return AttendanceRecord(
        record_id=str(r["record_id"]),
        student_id=str(r["student_id"]),
        roll_number=r["roll_number"],
        name=r["name"],
        marked_at=as_utc(r["marked_at"]),
        gps_latitude=float(r["gps_latitude"]) if r.get("gps_latitude") is not None else None,
        gps_longitude=float(r["gps_longitude"]) if r.get("gps_longitude") is not None else None,
        verification_status=VerificationStatus(r["verification_status"]),
        verification_method=VerificationMethod(method) if method else None,
        notes=r.get("notes"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection, policy: AccessPolicy, feed: Optional[ChangeFeed] = None):
        self._conn_factory = conn_factory
        self._policy = policy
        self._feed = feed

    def add(self, record: AttendanceRecord, *, principal: Principal) -> AttendanceRecord:
        row = record.to_row()
        self._policy.check(principal, "attendance_records", Action.INSERT, row)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    record_id, student_id, roll_number, name, marked_at,
                    gps_latitude, gps_longitude, verification_status, verification_method, notes
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    row["record_id"],
                    row["student_id"],
                    row["roll_number"],
                    row["name"],
                    to_db(record.marked_at),
                    row["gps_latitude"],
                    row["gps_longitude"],
                    row["verification_status"],
                    row["verification_method"],
                    row["notes"],
                ),
            )

        if self._feed is not None:
            self._feed.publish(ChangeEvent(ChangeType.INSERT, "attendance_records", row))
        return record

    def list_recent(self, student_id: str, *, principal: Principal, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT record_id, student_id, roll_number, name, marked_at,
                       gps_latitude, gps_longitude, verification_status, verification_method, notes
                FROM attendance_records
                WHERE student_id=%s
                ORDER BY marked_at DESC
                LIMIT %s
                """,
                (student_id, int(limit)),
            )
            rows = fetchall(cur)

        return [_to_record(r) for r in self._policy.filter_rows(principal, "attendance_records", rows)]
