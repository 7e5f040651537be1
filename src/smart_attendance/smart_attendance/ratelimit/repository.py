from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from ..database.access_policy import Principal
from .model import LoginAttempt


class LoginAttemptRepository(Protocol):
    def add(self, attempt: LoginAttempt, *, principal: Principal) -> None:
        raise NotImplementedError

    def list_since(self, identifier: str, since: datetime, *, principal: Principal) -> Sequence[LoginAttempt]:
        """Attempts for identifier with attempt_time >= since, newest first."""

        raise NotImplementedError

    def delete_older_than(self, cutoff: datetime) -> int:
        raise NotImplementedError
