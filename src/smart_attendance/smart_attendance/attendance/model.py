from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import VerificationMethod, VerificationStatus


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance event. Append-only."""

    record_id: str
    student_id: str
    roll_number: str
    name: str
    marked_at: datetime
    gps_latitude: Optional[float]
    gps_longitude: Optional[float]
    verification_status: VerificationStatus
    verification_method: Optional[VerificationMethod]
    notes: Optional[str] = None

    def to_row(self) -> dict:
        return {
            "record_id": self.record_id,
            "student_id": self.student_id,
            "roll_number": self.roll_number,
            "name": self.name,
            "marked_at": self.marked_at,
            "gps_latitude": self.gps_latitude,
            "gps_longitude": self.gps_longitude,
            "verification_status": self.verification_status.value,
            "verification_method": self.verification_method.value if self.verification_method else None,
            "notes": self.notes,
        }
