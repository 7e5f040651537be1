from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..common.logger import get_logger
from ..core.enums import ChangeType

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    change_type: ChangeType
    table: str
    row: Mapping[str, Any] = field(default_factory=dict)


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by ChangeFeed.subscribe; release with unsubscribe()."""

    def __init__(self, feed: "ChangeFeed", table: str, filters: Mapping[str, Any], callback: ChangeCallback):
        self._feed = feed
        self.table = table
        self.filters = dict(filters)
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        return all(str(event.row.get(k)) == str(v) for k, v in self.filters.items())

    def deliver(self, event: ChangeEvent) -> None:
        self._callback(event)

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._feed._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class ChangeFeed:
    """In-process change notifications, published by repositories after writes.

    Filters are equality matches on row columns (e.g. {"student_id": sid}).
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []

    def subscribe(self, table: str, callback: ChangeCallback, *, filters: Optional[Dict[str, Any]] = None) -> Subscription:
        sub = Subscription(self, table, filters or {}, callback)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def publish(self, event: ChangeEvent) -> int:
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]

        delivered = 0
        for sub in targets:
            try:
                sub.deliver(event)
                delivered += 1
            except Exception:
                # one broken listener must not fail the writer
                logger.exception("Change listener failed for %s %s", event.change_type.value, event.table)
        return delivered

    def subscriber_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            if table is None:
                return len(self._subscriptions)
            return sum(1 for s in self._subscriptions if s.table == table)

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)
