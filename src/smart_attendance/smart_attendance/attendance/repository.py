from __future__ import annotations

from typing import Protocol, Sequence

from ..database.access_policy import Principal
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def add(self, record: AttendanceRecord, *, principal: Principal) -> AttendanceRecord:
        raise NotImplementedError

    def list_recent(self, student_id: str, *, principal: Principal, limit: int) -> Sequence[AttendanceRecord]:
        """Newest first, at most `limit` rows."""

        raise NotImplementedError
