from __future__ import annotations

from typing import Callable

from ..core.exceptions import ValidationError
from ..identity.model import Account
from .repository import StudentRepository


def student_profile_hook(students: StudentRepository) -> Callable[[Account], None]:
    """Build the after-signup hook that creates the Student row.

    Idempotent on roll number: a second signup with the same roll number
    moves the existing row to the new account and refreshes name/email.
    """

    def on_account_created(account: Account) -> None:
        roll_number = account.attributes.get("roll_number")
        name = account.attributes.get("name")
        if not roll_number or not name:
            raise ValidationError("Signup requires roll number and name")
        students.upsert_from_signup(
            user_id=account.user_id,
            roll_number=str(roll_number),
            name=str(name),
            email=account.email,
        )

    return on_account_created
