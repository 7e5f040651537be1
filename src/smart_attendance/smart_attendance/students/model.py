from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Student:
    """Student profile linked to an identity account.

    Note: Plain data object; no DB access here.
    """

    student_id: str
    user_id: Optional[str]
    roll_number: str
    name: str
    email: Optional[str]
    face_embedding: Optional[str] = None
    voice_sample: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def first_name(self) -> str:
        parts = self.name.split(" ")
        return parts[0] if parts else ""

    def to_public_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "roll_number": self.roll_number,
            "name": self.name,
            "email": self.email,
            "has_face_reference": bool(self.face_embedding),
            "has_voice_reference": bool(self.voice_sample),
        }
