from __future__ import annotations

import threading
from typing import Callable, List, Optional

from ..common.logger import get_logger
from ..core.exceptions import DomainError
from ..database.access_policy import Principal
from ..database.change_feed import ChangeEvent, ChangeFeed, Subscription
from .model import AttendanceRecord
from .service import AttendanceService

logger = get_logger(__name__)

ATTENDANCE_TABLE = "attendance_records"

UpdateCallback = Callable[[List[AttendanceRecord]], None]


class RecordsViewer:
    """Latest attendance rows for one student, kept fresh from the change feed.

    Every change on ``attendance_records`` for the student triggers a full
    re-fetch of the bounded history (newest first). A failed fetch is logged
    and the previous rows stay visible.
    """

    def __init__(
        self,
        service: AttendanceService,
        feed: ChangeFeed,
        *,
        student_id: str,
        principal: Principal,
        on_update: Optional[UpdateCallback] = None,
    ):
        self._service = service
        self._feed = feed
        self._student_id = student_id
        self._principal = principal
        self._on_update = on_update
        self._lock = threading.Lock()
        self._records: List[AttendanceRecord] = []
        self._requested = 0
        self._applied = 0
        self._subscription: Optional[Subscription] = None

    @property
    def records(self) -> List[AttendanceRecord]:
        with self._lock:
            return list(self._records)

    @property
    def is_open(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def open(self) -> "RecordsViewer":
        if self._subscription is None:
            # subscribe first so an insert racing the initial fetch still triggers a refresh
            self._subscription = self._feed.subscribe(
                ATTENDANCE_TABLE,
                self._on_change,
                filters={"student_id": self._student_id},
            )
            self.refresh()
        return self

    def refresh(self) -> List[AttendanceRecord]:
        """Re-fetch the rows; a fetch overtaken by a newer one is discarded."""
        with self._lock:
            self._requested += 1
            ticket = self._requested
        try:
            rows = self._service.recent(self._student_id, principal=self._principal)
        except DomainError as e:
            logger.error("Failed to load attendance records for %s: %s", self._student_id, e)
            return self.records

        with self._lock:
            if ticket < self._applied:
                return list(self._records)
            self._applied = ticket
            self._records = rows
        if self._on_update is not None:
            self._on_update(list(rows))
        return list(rows)

    def close(self) -> None:
        sub, self._subscription = self._subscription, None
        if sub is not None:
            sub.unsubscribe()

    def _on_change(self, event: ChangeEvent) -> None:
        logger.debug("Attendance change %s for %s", event.change_type.value, self._student_id)
        self.refresh()

    def __enter__(self) -> "RecordsViewer":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
