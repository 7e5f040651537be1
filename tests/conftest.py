from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.smart_attendance.smart_attendance.database.access_policy import AccessPolicy
from src.smart_attendance.smart_attendance.database.change_feed import ChangeFeed
from src.smart_attendance.smart_attendance.identity.service import AuthService, IdentityService
from src.smart_attendance.smart_attendance.ratelimit.service import RateLimiter
from src.smart_attendance.smart_attendance.students.signup_hook import student_profile_hook

from tests.fakes import InMemoryAccounts, InMemoryAttendance, InMemoryAuthSessions, InMemoryLoginAttempts, InMemoryStudents


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 3, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def students() -> InMemoryStudents:
    repo = InMemoryStudents()
    repo.policy = AccessPolicy(repo)
    return repo


@pytest.fixture
def policy(students) -> AccessPolicy:
    return students.policy


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def attempts() -> InMemoryLoginAttempts:
    return InMemoryLoginAttempts()


@pytest.fixture
def attendance_repo(policy, feed) -> InMemoryAttendance:
    return InMemoryAttendance(policy, feed)


@pytest.fixture
def auth_service(students, attempts) -> AuthService:
    identity = IdentityService(InMemoryAccounts(), InMemoryAuthSessions())
    identity.register_signup_hook(student_profile_hook(students))
    return AuthService(identity, students, RateLimiter(attempts))
