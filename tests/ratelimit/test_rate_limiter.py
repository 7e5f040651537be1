from __future__ import annotations

from datetime import timedelta

import pytest

from src.smart_attendance.smart_attendance.core.exceptions import RateLimited
from src.smart_attendance.smart_attendance.ratelimit.service import RateLimiter

from tests.fakes import InMemoryLoginAttempts


def _fail(limiter: RateLimiter, identifier: str, times: int, now):
    for _ in range(times):
        limiter.record(identifier, success=False, now=now)


def test_sixth_attempt_is_blocked_after_five_failures(fixed_now):
    limiter = RateLimiter(InMemoryLoginAttempts())
    _fail(limiter, "CS-001", 5, fixed_now)

    with pytest.raises(RateLimited) as exc:
        limiter.check("CS-001", now=fixed_now + timedelta(minutes=1))

    assert str(exc.value) == "Too many failed login attempts. Please try again in 15 minutes."
    assert exc.value.retryable is False


def test_four_failures_still_allowed(fixed_now):
    limiter = RateLimiter(InMemoryLoginAttempts())
    _fail(limiter, "CS-001", 4, fixed_now)

    limiter.check("CS-001", now=fixed_now)


def test_other_identifiers_do_not_count(fixed_now):
    limiter = RateLimiter(InMemoryLoginAttempts())
    for i in range(5):
        limiter.record("CS-001", success=False, now=fixed_now + timedelta(seconds=i))
        limiter.record("CS-002", success=False, now=fixed_now + timedelta(seconds=i))
    _fail(limiter, "CS-003", 4, fixed_now)

    with pytest.raises(RateLimited):
        limiter.check("CS-001", now=fixed_now + timedelta(minutes=1))
    limiter.check("CS-003", now=fixed_now + timedelta(minutes=1))


def test_successful_attempts_do_not_count(fixed_now):
    limiter = RateLimiter(InMemoryLoginAttempts())
    _fail(limiter, "CS-001", 4, fixed_now)
    for _ in range(3):
        limiter.record("CS-001", success=True, now=fixed_now)

    limiter.check("CS-001", now=fixed_now)


def test_attempts_outside_window_are_ignored(fixed_now):
    limiter = RateLimiter(InMemoryLoginAttempts())
    _fail(limiter, "CS-001", 4, fixed_now)
    _fail(limiter, "CS-001", 1, fixed_now + timedelta(minutes=16))

    assert limiter.failed_count("CS-001", now=fixed_now + timedelta(minutes=16)) == 1
    limiter.check("CS-001", now=fixed_now + timedelta(minutes=16))


def test_query_error_fails_open_by_default(fixed_now):
    attempts = InMemoryLoginAttempts()
    attempts.fail_reads = True
    limiter = RateLimiter(attempts)

    limiter.check("CS-001", now=fixed_now)


def test_query_error_can_fail_closed(fixed_now):
    attempts = InMemoryLoginAttempts()
    attempts.fail_reads = True
    limiter = RateLimiter(attempts, fail_open=False)

    with pytest.raises(RateLimited):
        limiter.check("CS-001", now=fixed_now)


def test_record_stores_attempt_details(fixed_now):
    attempts = InMemoryLoginAttempts()
    limiter = RateLimiter(attempts)

    limiter.record("CS-001", success=True, ip_address="10.0.0.7", now=fixed_now)

    (attempt,) = attempts.items
    assert attempt.identifier == "CS-001"
    assert attempt.success is True
    assert attempt.ip_address == "10.0.0.7"
    assert attempt.attempt_time == fixed_now


def test_record_write_failure_is_not_raised(fixed_now):
    attempts = InMemoryLoginAttempts()
    attempts.fail_writes = True
    limiter = RateLimiter(attempts)

    limiter.record("CS-001", success=False, now=fixed_now)

    assert attempts.items == []


def test_prune_removes_attempts_older_than_retention(fixed_now):
    attempts = InMemoryLoginAttempts()
    limiter = RateLimiter(attempts)
    limiter.record("CS-001", success=False, now=fixed_now - timedelta(hours=30))
    limiter.record("CS-001", success=False, now=fixed_now - timedelta(hours=2))

    removed = limiter.prune(now=fixed_now)

    assert removed == 1
    assert len(attempts.items) == 1


def test_threshold_and_window_are_configurable(fixed_now):
    limiter = RateLimiter(InMemoryLoginAttempts(), max_failures=2, window=timedelta(minutes=5))
    _fail(limiter, "CS-001", 2, fixed_now)

    with pytest.raises(RateLimited) as exc:
        limiter.check("CS-001", now=fixed_now)
    assert "5 minutes" in str(exc.value)

    limiter.check("CS-001", now=fixed_now + timedelta(minutes=6))
