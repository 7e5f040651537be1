from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional

from .attendance.flow import AttendanceFlow, FlowSettings
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .attendance.sessions import FlowSessionRegistry
from .common.datetime_utils import now_utc
from .core import constants
from .database.access_policy import AccessPolicy
from .database.change_feed import ChangeFeed
from .database.connection import DBConfig, DatabaseConnection
from .identity.mysql_account_repository import MySQLAccountRepository, MySQLAuthSessionRepository
from .identity.service import AuthService, IdentityService
from .ratelimit.mysql_login_attempt_repository import MySQLLoginAttemptRepository
from .ratelimit.service import RateLimiter
from .students.mysql_student_repository import MySQLOwnershipResolver, MySQLStudentRepository
from .students.signup_hook import student_profile_hook


@dataclass(frozen=True)
class Container:
    auth_service: AuthService
    rate_limiter: RateLimiter
    attendance_service: AttendanceService
    flow: AttendanceFlow
    flow_sessions: FlowSessionRegistry
    change_feed: ChangeFeed
    clock: Callable[[], datetime] = field(default=now_utc)


def flow_settings_from(options: Mapping[str, Any]) -> FlowSettings:
    return FlowSettings(
        campus_latitude=float(options.get("CAMPUS_LATITUDE", constants.CAMPUS_LATITUDE)),
        campus_longitude=float(options.get("CAMPUS_LONGITUDE", constants.CAMPUS_LONGITUDE)),
        radius_meters=float(options.get("CAMPUS_RADIUS_METERS", constants.CAMPUS_RADIUS_METERS)),
        face_settle=timedelta(seconds=float(options.get("FACE_SETTLE_SECONDS", constants.FACE_SETTLE_SECONDS))),
        voice_fallback_delay=timedelta(
            seconds=float(options.get("VOICE_FALLBACK_SECONDS", constants.VOICE_FALLBACK_SECONDS))
        ),
        voice_fallback_enabled=bool(options.get("VOICE_FALLBACK_ENABLED", True)),
        speech_language=str(options.get("SPEECH_LANGUAGE", constants.SPEECH_LANGUAGE)),
    )


def rate_limiter_from(attempts, options: Mapping[str, Any]) -> RateLimiter:
    return RateLimiter(
        attempts,
        max_failures=int(options.get("RATE_LIMIT_MAX_FAILURES", constants.RATE_LIMIT_MAX_FAILURES)),
        window=timedelta(minutes=int(options.get("RATE_LIMIT_WINDOW_MINUTES", constants.RATE_LIMIT_WINDOW_MINUTES))),
        retention=timedelta(
            hours=int(options.get("LOGIN_ATTEMPT_RETENTION_HOURS", constants.LOGIN_ATTEMPT_RETENTION_HOURS))
        ),
        fail_open=bool(options.get("RATE_LIMIT_FAIL_OPEN", True)),
    )


def build_container(*, db_config: dict, options: Optional[Mapping[str, Any]] = None) -> Container:
    options = options or {}
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    change_feed = ChangeFeed()
    policy = AccessPolicy(MySQLOwnershipResolver(conn))

    students_repo = MySQLStudentRepository(conn, policy)
    attempts_repo = MySQLLoginAttemptRepository(conn, policy)
    attendance_repo = MySQLAttendanceRepository(conn, policy, change_feed)
    accounts_repo = MySQLAccountRepository(conn)
    sessions_repo = MySQLAuthSessionRepository(conn)

    identity = IdentityService(
        accounts_repo,
        sessions_repo,
        session_lifetime=timedelta(days=int(options.get("SESSION_DAYS", constants.DEFAULT_SESSION_DAYS))),
    )
    identity.register_signup_hook(student_profile_hook(students_repo))

    rate_limiter = rate_limiter_from(attempts_repo, options)
    auth_service = AuthService(identity, students_repo, rate_limiter)
    attendance_service = AttendanceService(
        attendance_repo,
        history_limit=int(options.get("RECORDS_HISTORY_LIMIT", constants.RECORDS_HISTORY_LIMIT)),
    )
    flow = AttendanceFlow(attendance_service, settings=flow_settings_from(options))

    return Container(
        auth_service=auth_service,
        rate_limiter=rate_limiter,
        attendance_service=attendance_service,
        flow=flow,
        flow_sessions=FlowSessionRegistry(
            flow,
            idle_timeout=timedelta(
                minutes=int(options.get("FLOW_SESSION_IDLE_MINUTES", constants.FLOW_SESSION_IDLE_MINUTES))
            ),
        ),
        change_feed=change_feed,
    )
