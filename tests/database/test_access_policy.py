from __future__ import annotations

import pytest

from src.smart_attendance.smart_attendance.core.enums import Action
from src.smart_attendance.smart_attendance.core.exceptions import AuthorizationError
from src.smart_attendance.smart_attendance.database.access_policy import AccessPolicy, Principal


@pytest.fixture
def owned(students):
    mine = students.upsert_from_signup(user_id="u-1", roll_number="CS-1", name="Asha Verma", email="asha@example.com")
    theirs = students.upsert_from_signup(user_id="u-2", roll_number="CS-2", name="Ravi Kumar", email="ravi@example.com")
    return mine, theirs


def test_student_can_insert_own_attendance_only(policy, owned):
    mine, theirs = owned
    me = Principal.student("u-1")

    assert policy.allows(me, "attendance_records", Action.INSERT, {"student_id": mine.student_id})
    with pytest.raises(AuthorizationError):
        policy.check(me, "attendance_records", Action.INSERT, {"student_id": theirs.student_id})


def test_anonymous_cannot_read_students(policy, owned):
    mine, _ = owned
    row = {"student_id": mine.student_id, "user_id": "u-1"}

    assert not policy.allows(Principal.anonymous(), "students", Action.SELECT, row)
    assert policy.allows(Principal.student("u-1"), "students", Action.SELECT, row)


def test_service_principal_bypasses_rules(policy, owned):
    _, theirs = owned

    assert policy.allows(Principal.service(), "students", Action.DELETE, {"user_id": theirs.user_id})


def test_login_attempts_are_insertable_by_anyone_but_readable_by_owner(policy, owned):
    assert policy.allows(Principal.anonymous(), "login_attempts", Action.INSERT, {"identifier": "CS-9"})
    assert policy.allows(Principal.student("u-1"), "login_attempts", Action.SELECT, {"identifier": "CS-1"})
    assert policy.allows(Principal.student("u-1"), "login_attempts", Action.SELECT, {"identifier": "asha@example.com"})
    assert not policy.allows(Principal.student("u-1"), "login_attempts", Action.SELECT, {"identifier": "CS-2"})


def test_missing_rule_denies(students, owned):
    policy = AccessPolicy(students, policies={})

    assert not policy.allows(Principal.student("u-1"), "students", Action.SELECT, {"user_id": "u-1"})


def test_filter_rows_keeps_owned_rows(policy, owned):
    mine, theirs = owned
    rows = [{"student_id": mine.student_id, "n": 1}, {"student_id": theirs.student_id, "n": 2}]

    visible = policy.filter_rows(Principal.student("u-1"), "attendance_records", rows)

    assert [r["n"] for r in visible] == [1]
