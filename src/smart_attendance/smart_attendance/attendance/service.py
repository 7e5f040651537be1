from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from ..core.constants import RECORDS_HISTORY_LIMIT
from ..core.enums import VerificationMethod, VerificationStatus
from ..database.access_policy import Principal
from ..students.model import Student
from .model import AttendanceRecord, Position
from .repository import AttendanceRepository


class AttendanceService:
    def __init__(self, records: AttendanceRepository, *, history_limit: int = RECORDS_HISTORY_LIMIT):
        self._records = records
        self._history_limit = int(history_limit)

    @property
    def history_limit(self) -> int:
        return self._history_limit

    def mark(
        self,
        *,
        student: Student,
        position: Position,
        method: VerificationMethod,
        principal: Principal,
        now: datetime,
    ) -> AttendanceRecord:
        """Insert a single passed record. Ownership is checked by the repository policy."""
        record = AttendanceRecord(
            record_id=str(uuid.uuid4()),
            student_id=student.student_id,
            roll_number=student.roll_number,
            name=student.name,
            marked_at=now,
            gps_latitude=position.latitude,
            gps_longitude=position.longitude,
            verification_status=VerificationStatus.PASSED,
            verification_method=method,
            notes="Attendance marked successfully",
        )
        return self._records.add(record, principal=principal)

    def recent(self, student_id: str, *, principal: Principal, limit: Optional[int] = None) -> List[AttendanceRecord]:
        limit = min(int(limit or self._history_limit), self._history_limit)
        rows = list(self._records.list_recent(student_id, principal=principal, limit=limit))
        rows.sort(key=lambda r: r.marked_at, reverse=True)
        return rows[:limit]

    def get_history_ui(self, student_id: str, *, principal: Principal) -> List[dict]:
        return [self.to_ui(r) for r in self.recent(student_id, principal=principal)]

    @staticmethod
    def to_ui(r: AttendanceRecord) -> dict:
        method_label = {
            VerificationMethod.FACE_AND_VOICE: "face + voice",
            VerificationMethod.FACE_ONLY: "face only",
        }.get(r.verification_method, "-")

        return {
            "record_id": r.record_id,
            "date": r.marked_at.strftime("%Y-%m-%d"),
            "time": r.marked_at.strftime("%H:%M:%S"),
            "marked_at": r.marked_at.isoformat(),
            "status": r.verification_status.value,
            "method": method_label,
            "location": (
                f"{r.gps_latitude:.4f}, {r.gps_longitude:.4f}"
                if r.gps_latitude is not None and r.gps_longitude is not None
                else None
            ),
            "notes": r.notes,
        }
