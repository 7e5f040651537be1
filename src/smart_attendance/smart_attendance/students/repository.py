from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..database.access_policy import OwnedStudent, Principal
from .model import Student


class StudentRepository(Protocol):
    """Repository interface for Student.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_by_roll_number(self, roll_number: str, *, principal: Principal) -> Optional[Student]:
        raise NotImplementedError

    def get_by_user_id(self, user_id: str, *, principal: Principal) -> Optional[Student]:
        raise NotImplementedError

    def upsert_from_signup(self, *, user_id: str, roll_number: str, name: str, email: str) -> Student:
        """Signup hook: insert, or update user/name/email when the roll number exists."""

        raise NotImplementedError

    def students_for_user(self, user_id: str) -> Sequence[OwnedStudent]:
        raise NotImplementedError
