from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Optional

from ..core.constants import FLOW_SESSION_IDLE_MINUTES
from ..students.model import Student
from .flow import AttendanceFlow, VerificationSession

DEFAULT_IDLE_TIMEOUT = timedelta(minutes=FLOW_SESSION_IDLE_MINUTES)


class _UserLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class FlowSessionRegistry:
    """One verification session per account, mutated under a per-account lock.

    Per-account locks live only while someone holds or waits on them and the
    account still has a session. Sessions untouched for ``idle_timeout`` are
    closed on the next ``acquire``.
    """

    def __init__(self, flow: AttendanceFlow, *, idle_timeout: timedelta = DEFAULT_IDLE_TIMEOUT):
        self._flow = flow
        self._idle_timeout = idle_timeout
        self._guard = threading.Lock()
        self._sessions: Dict[str, VerificationSession] = {}
        self._last_used: Dict[str, datetime] = {}
        self._locks: Dict[str, _UserLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def lock_count(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def _locked(self, user_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = self._locks[user_id] = _UserLock()
            entry.holders += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0 and user_id not in self._sessions:
                    del self._locks[user_id]

    def get(self, user_id: str) -> Optional[VerificationSession]:
        with self._guard:
            return self._sessions.get(user_id)

    @contextmanager
    def acquire(self, user_id: str, student: Student, *, now: datetime) -> Iterator[VerificationSession]:
        """Yield the user's session (created on first use) while holding its lock."""
        self.evict_idle(now=now, keep=user_id)
        with self._locked(user_id):
            with self._guard:
                session = self._sessions.get(user_id)
                stale = session if session is not None and session.student.student_id != student.student_id else None
                if session is None or stale is not None:
                    session = self._sessions[user_id] = self._flow.new_session(student, now=now)
                self._last_used[user_id] = now
            if stale is not None:
                self._flow.close(stale, now=now)
            yield session

    def discard(self, user_id: str, *, now: datetime) -> bool:
        with self._locked(user_id):
            with self._guard:
                session = self._sessions.pop(user_id, None)
                self._last_used.pop(user_id, None)
            if session is None:
                return False
            self._flow.close(session, now=now)
            return True

    def evict_idle(self, *, now: datetime, keep: Optional[str] = None) -> int:
        """Close sessions not used within the idle timeout; returns how many."""
        cutoff = now - self._idle_timeout
        with self._guard:
            idle: List[str] = [u for u, at in self._last_used.items() if at < cutoff and u != keep]
        evicted = 0
        for user_id in idle:
            with self._locked(user_id):
                with self._guard:
                    at = self._last_used.get(user_id)
                    if at is None or at >= cutoff:
                        continue
                    session = self._sessions.pop(user_id)
                    del self._last_used[user_id]
                self._flow.close(session, now=now)
                evicted += 1
        return evicted
