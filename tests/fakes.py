from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from src.smart_attendance.smart_attendance.attendance.devices import Frame
from src.smart_attendance.smart_attendance.attendance.model import AttendanceRecord, Position
from src.smart_attendance.smart_attendance.core.enums import Action, ChangeType
from src.smart_attendance.smart_attendance.core.exceptions import DeviceUnavailable, PersistenceError
from src.smart_attendance.smart_attendance.database.access_policy import AccessPolicy, OwnedStudent, Principal
from src.smart_attendance.smart_attendance.database.change_feed import ChangeEvent, ChangeFeed
from src.smart_attendance.smart_attendance.identity.model import Account, AuthSession
from src.smart_attendance.smart_attendance.ratelimit.model import LoginAttempt
from src.smart_attendance.smart_attendance.students.model import Student


class InMemoryStudents:
    def __init__(self):
        self.by_roll: Dict[str, Student] = {}
        self.policy: Optional[AccessPolicy] = None

    def _row(self, s: Student) -> dict:
        return {"student_id": s.student_id, "user_id": s.user_id, "roll_number": s.roll_number}

    def _visible(self, s: Optional[Student], principal: Principal) -> Optional[Student]:
        if s is None:
            return None
        if self.policy and not self.policy.allows(principal, "students", Action.SELECT, self._row(s)):
            return None
        return s

    def get_by_roll_number(self, roll_number: str, *, principal: Principal) -> Optional[Student]:
        return self._visible(self.by_roll.get(roll_number), principal)

    def get_by_user_id(self, user_id: str, *, principal: Principal) -> Optional[Student]:
        match = next((s for s in self.by_roll.values() if s.user_id == user_id), None)
        return self._visible(match, principal)

    def upsert_from_signup(self, *, user_id: str, roll_number: str, name: str, email: str) -> Student:
        existing = self.by_roll.get(roll_number)
        if existing:
            student = replace(existing, user_id=user_id, name=name, email=email)
        else:
            student = Student(
                student_id=str(uuid.uuid4()),
                user_id=user_id,
                roll_number=roll_number,
                name=name,
                email=email,
            )
        self.by_roll[roll_number] = student
        return student

    def students_for_user(self, user_id: str) -> Sequence[OwnedStudent]:
        return [
            OwnedStudent(student_id=s.student_id, roll_number=s.roll_number, email=s.email)
            for s in self.by_roll.values()
            if s.user_id == user_id
        ]


class InMemoryLoginAttempts:
    def __init__(self):
        self.items: List[LoginAttempt] = []
        self.fail_reads = False
        self.fail_writes = False

    def add(self, attempt: LoginAttempt, *, principal: Principal) -> None:
        if self.fail_writes:
            raise PersistenceError("insert failed")
        self.items.append(attempt)

    def list_since(self, identifier: str, since: datetime, *, principal: Principal) -> Sequence[LoginAttempt]:
        if self.fail_reads:
            raise PersistenceError("query failed")
        rows = [a for a in self.items if a.identifier == identifier and a.attempt_time >= since]
        rows.sort(key=lambda a: a.attempt_time, reverse=True)
        return rows

    def delete_older_than(self, cutoff: datetime) -> int:
        before = len(self.items)
        self.items = [a for a in self.items if a.attempt_time >= cutoff]
        return before - len(self.items)


class InMemoryAccounts:
    def __init__(self):
        self.by_id: Dict[str, Account] = {}

    def get_by_email(self, email: str) -> Optional[Account]:
        return next((a for a in self.by_id.values() if a.email == email), None)

    def get_by_id(self, user_id: str) -> Optional[Account]:
        return self.by_id.get(user_id)

    def create(self, account: Account) -> None:
        self.by_id[account.user_id] = account

    def delete(self, user_id: str) -> bool:
        return self.by_id.pop(user_id, None) is not None


class InMemoryAuthSessions:
    def __init__(self):
        self.by_token: Dict[str, AuthSession] = {}

    def save(self, session: AuthSession) -> None:
        self.by_token[session.access_token] = session

    def get(self, access_token: str) -> Optional[AuthSession]:
        return self.by_token.get(access_token)

    def delete(self, access_token: str) -> bool:
        return self.by_token.pop(access_token, None) is not None


class InMemoryAttendance:
    def __init__(self, policy: Optional[AccessPolicy] = None, feed: Optional[ChangeFeed] = None):
        self.items: List[AttendanceRecord] = []
        self.policy = policy
        self.feed = feed
        self.fail_inserts = False
        self.fail_reads = False
        self.reads = 0

    def add(self, record: AttendanceRecord, *, principal: Principal) -> AttendanceRecord:
        row = record.to_row()
        if self.policy:
            self.policy.check(principal, "attendance_records", Action.INSERT, row)
        if self.fail_inserts:
            raise PersistenceError("insert failed")
        self.items.append(record)
        if self.feed is not None:
            self.feed.publish(ChangeEvent(ChangeType.INSERT, "attendance_records", row))
        return record

    def list_recent(self, student_id: str, *, principal: Principal, limit: int) -> Sequence[AttendanceRecord]:
        self.reads += 1
        if self.fail_reads:
            raise PersistenceError("query failed")
        rows = [r for r in self.items if r.student_id == student_id]
        if self.policy:
            allowed = {r["record_id"] for r in self.policy.filter_rows(principal, "attendance_records", [x.to_row() for x in rows])}
            rows = [r for r in rows if r.record_id in allowed]
        rows.sort(key=lambda r: r.marked_at, reverse=True)
        return rows[:limit]


# ---- devices ---------------------------------------------------------------


class FixedPosition:
    def __init__(self, latitude: float, longitude: float):
        self.calls = 0
        self._position = Position(latitude=latitude, longitude=longitude, accuracy=5.0)

    def current_position(self) -> Position:
        self.calls += 1
        return self._position


class DeniedPosition:
    def current_position(self) -> Position:
        raise DeviceUnavailable("Unable to get your location. Please enable location services.", device="geolocation")


class FakeCaptureHandle:
    def __init__(self, opened_at: datetime):
        self.opened_at = opened_at
        self.released = False
        self.broken = False

    def read_frame(self, now: datetime) -> Frame:
        if self.broken or self.released:
            raise DeviceUnavailable("Camera stream has ended", device="camera", retryable=False)
        return Frame(captured_at=now, stream_started_at=self.opened_at)

    def release(self) -> None:
        self.released = True


class FakeCamera:
    def __init__(self, *, denied: bool = False):
        self.denied = denied
        self.handles: List[FakeCaptureHandle] = []

    def acquire(self, now: datetime) -> FakeCaptureHandle:
        if self.denied:
            raise DeviceUnavailable(
                "Unable to access camera. Please enable camera permissions.", device="camera", retryable=False
            )
        handle = FakeCaptureHandle(now)
        self.handles.append(handle)
        return handle


class ScriptedSpeech:
    def __init__(self, transcript: str = "", *, supported: bool = True, error: bool = False):
        self.transcript = transcript
        self.supported = supported
        self.error = error
        self.languages: List[str] = []

    def listen_once(self, *, lang: str) -> str:
        self.languages.append(lang)
        if self.error:
            raise DeviceUnavailable("Voice recognition error", device="microphone")
        return self.transcript


class Clock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now
