from __future__ import annotations

from datetime import timedelta

import pytest

from src.smart_attendance.smart_attendance.attendance.model import Position
from src.smart_attendance.smart_attendance.attendance.service import AttendanceService
from src.smart_attendance.smart_attendance.attendance.viewer import RecordsViewer
from src.smart_attendance.smart_attendance.core.enums import VerificationMethod
from src.smart_attendance.smart_attendance.database.access_policy import Principal


@pytest.fixture
def service(attendance_repo):
    return AttendanceService(attendance_repo)


@pytest.fixture
def pair(students):
    mine = students.upsert_from_signup(user_id="u-1", roll_number="CS-1", name="Asha Verma", email="asha@example.com")
    theirs = students.upsert_from_signup(user_id="u-2", roll_number="CS-2", name="Ravi Kumar", email="ravi@example.com")
    return mine, theirs


def _mark(service, student, user_id, when):
    return service.mark(
        student=student,
        position=Position(28.6139, 77.2090),
        method=VerificationMethod.FACE_AND_VOICE,
        principal=Principal.student(user_id),
        now=when,
    )


def test_viewer_shows_latest_ten_newest_first(service, feed, pair, fixed_now):
    mine, _ = pair
    for i in range(12):
        _mark(service, mine, "u-1", fixed_now + timedelta(minutes=i))

    with RecordsViewer(service, feed, student_id=mine.student_id, principal=Principal.student("u-1")) as viewer:
        rows = viewer.records

    assert len(rows) == 10
    stamps = [r.marked_at for r in rows]
    assert stamps == sorted(stamps, reverse=True)
    assert stamps[0] == fixed_now + timedelta(minutes=11)


def test_viewer_refreshes_on_own_inserts_only(service, feed, attendance_repo, pair, fixed_now):
    mine, theirs = pair
    updates = []
    viewer = RecordsViewer(
        service,
        feed,
        student_id=mine.student_id,
        principal=Principal.student("u-1"),
        on_update=updates.append,
    ).open()
    assert updates == [[]]

    _mark(service, theirs, "u-2", fixed_now)
    assert len(updates) == 1

    record = _mark(service, mine, "u-1", fixed_now)
    assert len(updates) == 2
    assert updates[-1] == [record]
    assert viewer.records == [record]
    viewer.close()


def test_close_releases_subscription(service, feed, attendance_repo, pair, fixed_now):
    mine, _ = pair
    viewer = RecordsViewer(service, feed, student_id=mine.student_id, principal=Principal.student("u-1")).open()
    assert feed.subscriber_count("attendance_records") == 1

    viewer.close()
    reads = attendance_repo.reads
    _mark(service, mine, "u-1", fixed_now)

    assert feed.subscriber_count("attendance_records") == 0
    assert attendance_repo.reads == reads
    assert not viewer.is_open


def test_fetch_error_keeps_previous_rows(service, feed, attendance_repo, pair, fixed_now):
    mine, _ = pair
    first = _mark(service, mine, "u-1", fixed_now)
    viewer = RecordsViewer(service, feed, student_id=mine.student_id, principal=Principal.student("u-1")).open()

    attendance_repo.fail_reads = True
    _mark(service, mine, "u-1", fixed_now + timedelta(minutes=1))

    assert viewer.records == [first]
    viewer.close()


def test_other_accounts_cannot_read_records(service, feed, pair, fixed_now):
    mine, _ = pair
    _mark(service, mine, "u-1", fixed_now)

    with RecordsViewer(service, feed, student_id=mine.student_id, principal=Principal.student("u-2")) as viewer:
        assert viewer.records == []


class _InsertDuringFirstFetch:
    """Service wrapper whose first fetch lands an insert before returning the older rows."""

    def __init__(self, service, insert):
        self._service = service
        self._insert = insert

    def recent(self, student_id, *, principal):
        rows = self._service.recent(student_id, principal=principal)
        insert, self._insert = self._insert, None
        if insert is not None:
            insert()
        return rows


def test_insert_during_initial_fetch_is_not_missed(service, feed, pair, fixed_now):
    mine, _ = pair
    inserted = []
    racing = _InsertDuringFirstFetch(service, lambda: inserted.append(_mark(service, mine, "u-1", fixed_now)))
    updates = []

    viewer = RecordsViewer(
        racing,
        feed,
        student_id=mine.student_id,
        principal=Principal.student("u-1"),
        on_update=updates.append,
    ).open()

    assert viewer.records == inserted
    assert updates == [inserted]
    viewer.close()
