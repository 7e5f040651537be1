from __future__ import annotations

from src.smart_attendance.smart_attendance.core.enums import ChangeType
from src.smart_attendance.smart_attendance.database.change_feed import ChangeEvent, ChangeFeed


def _insert(student_id: str) -> ChangeEvent:
    return ChangeEvent(ChangeType.INSERT, "attendance_records", {"student_id": student_id})


def test_subscriber_receives_matching_events_only():
    feed = ChangeFeed()
    seen = []
    feed.subscribe("attendance_records", seen.append, filters={"student_id": "s-1"})

    feed.publish(_insert("s-1"))
    feed.publish(_insert("s-2"))
    feed.publish(ChangeEvent(ChangeType.INSERT, "students", {"student_id": "s-1"}))

    assert [e.row["student_id"] for e in seen] == ["s-1"]


def test_unsubscribe_stops_delivery():
    feed = ChangeFeed()
    seen = []
    sub = feed.subscribe("attendance_records", seen.append)

    sub.unsubscribe()
    sub.unsubscribe()

    assert feed.publish(_insert("s-1")) == 0
    assert seen == []
    assert feed.subscriber_count() == 0


def test_subscription_context_manager_unsubscribes():
    feed = ChangeFeed()
    with feed.subscribe("attendance_records", lambda e: None):
        assert feed.subscriber_count("attendance_records") == 1
    assert feed.subscriber_count("attendance_records") == 0


def test_failing_listener_does_not_block_others():
    feed = ChangeFeed()
    seen = []

    def broken(event):
        raise RuntimeError("listener crashed")

    feed.subscribe("attendance_records", broken)
    feed.subscribe("attendance_records", seen.append)

    delivered = feed.publish(_insert("s-1"))

    assert delivered == 1
    assert len(seen) == 1
