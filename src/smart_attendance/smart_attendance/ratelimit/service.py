from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import now_utc
from ..common.logger import get_logger
from ..core.constants import LOGIN_ATTEMPT_RETENTION_HOURS, RATE_LIMIT_MAX_FAILURES, RATE_LIMIT_WINDOW_MINUTES
from ..core.exceptions import PersistenceError, RateLimited
from ..database.access_policy import Principal
from .model import LoginAttempt
from .repository import LoginAttemptRepository

logger = get_logger(__name__)


class RateLimiter:
    """Counts failed logins per identifier inside a rolling window.

    The limiter reads and writes with the service principal: it runs before
    anyone is authenticated.
    """

    def __init__(
        self,
        attempts: LoginAttemptRepository,
        *,
        max_failures: int = RATE_LIMIT_MAX_FAILURES,
        window: timedelta = timedelta(minutes=RATE_LIMIT_WINDOW_MINUTES),
        retention: timedelta = timedelta(hours=LOGIN_ATTEMPT_RETENTION_HOURS),
        fail_open: bool = True,
    ):
        self._attempts = attempts
        self._max_failures = int(max_failures)
        self._window = window
        self._retention = retention
        self._fail_open = bool(fail_open)

    @property
    def cooldown_message(self) -> str:
        minutes = int(self._window.total_seconds() // 60)
        return f"Too many failed login attempts. Please try again in {minutes} minutes."

    def failed_count(self, identifier: str, *, now: Optional[datetime] = None) -> int:
        now = now or now_utc()
        since = now - self._window
        attempts = self._attempts.list_since(identifier, since, principal=Principal.service())
        return sum(1 for a in attempts if not a.success and a.attempt_time >= since)

    def check(self, identifier: str, *, now: Optional[datetime] = None) -> None:
        """Raise RateLimited when the identifier reached the failure threshold."""
        try:
            failed = self.failed_count(identifier, now=now)
        except PersistenceError as e:
            if not self._fail_open:
                raise RateLimited("Unable to verify login attempts. Please try again later.") from e
            logger.warning("Rate limit check failed for %s, allowing attempt: %s", identifier, e)
            return

        if failed >= self._max_failures:
            logger.info("Rate limited %s (%d failed attempts)", identifier, failed)
            raise RateLimited(self.cooldown_message)

    def record(
        self,
        identifier: str,
        *,
        success: bool,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        attempt = LoginAttempt(
            attempt_id=str(uuid.uuid4()),
            identifier=identifier,
            attempt_time=now or now_utc(),
            success=bool(success),
            ip_address=ip_address,
        )
        try:
            self._attempts.add(attempt, principal=Principal.service())
        except PersistenceError:
            # the login outcome stands even if the audit row is lost
            logger.exception("Could not record login attempt for %s", identifier)

    def prune(self, *, now: Optional[datetime] = None) -> int:
        """Delete attempts older than the retention period."""
        cutoff = (now or now_utc()) - self._retention
        removed = self._attempts.delete_older_than(cutoff)
        logger.info("Pruned %d login attempts older than %s", removed, cutoff.isoformat())
        return removed
