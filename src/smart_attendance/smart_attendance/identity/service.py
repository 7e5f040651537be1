from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_utc
from ..common.logger import get_logger
from ..common.validators import (
    validate_email,
    validate_login_password,
    validate_name,
    validate_roll_number,
    validate_signup_password,
)
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.exceptions import AuthError, DomainError, ValidationError
from ..database.access_policy import Principal
from ..ratelimit.service import RateLimiter
from ..students.model import Student
from ..students.repository import StudentRepository
from .model import Account, AuthSession
from .repository import AccountRepository, AuthSessionRepository

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid roll number or password"
ALREADY_REGISTERED = "This email or roll number is already registered"

SignupHook = Callable[[Account], None]


class IdentityService:
    """Email/password identity: accounts and opaque session tokens."""

    def __init__(
        self,
        accounts: AccountRepository,
        sessions: AuthSessionRepository,
        *,
        session_lifetime: timedelta = timedelta(days=DEFAULT_SESSION_DAYS),
    ):
        self._accounts = accounts
        self._sessions = sessions
        self._session_lifetime = session_lifetime
        self._signup_hooks: List[SignupHook] = []

    def register_signup_hook(self, hook: SignupHook) -> None:
        self._signup_hooks.append(hook)

    def sign_up(self, email: str, password: str, attributes: Dict[str, Any], *, now: Optional[datetime] = None) -> Account:
        if self._accounts.get_by_email(email):
            raise ValidationError(ALREADY_REGISTERED)

        account = Account(
            user_id=str(uuid.uuid4()),
            email=email,
            password_hash=generate_password_hash(password),
            attributes=dict(attributes),
            created_at=now or now_utc(),
        )
        self._accounts.create(account)

        try:
            for hook in self._signup_hooks:
                hook(account)
        except Exception:
            # account and profile are created together or not at all
            self._accounts.delete(account.user_id)
            raise

        return account

    def sign_in(self, email: str, password: str, *, now: Optional[datetime] = None) -> AuthSession:
        account = self._accounts.get_by_email(email)
        if not account:
            raise AuthError("Invalid login credentials")

        try:
            ok = check_password_hash(account.password_hash, password)
        except Exception:
            # e.g. placeholder hashes or corrupted values
            ok = False

        if not ok:
            raise AuthError("Invalid login credentials")

        now = now or now_utc()
        session = AuthSession(
            access_token=secrets.token_urlsafe(32),
            user_id=account.user_id,
            email=account.email,
            created_at=now,
            expires_at=now + self._session_lifetime,
        )
        self._sessions.save(session)
        return session

    def get_session(self, access_token: Optional[str], *, now: Optional[datetime] = None) -> Optional[AuthSession]:
        if not access_token:
            return None
        session = self._sessions.get(access_token)
        if not session:
            return None
        if session.is_expired(now or now_utc()):
            self._sessions.delete(access_token)
            return None
        return session

    def sign_out(self, access_token: Optional[str]) -> None:
        if access_token:
            self._sessions.delete(access_token)


@dataclass(frozen=True)
class LoginResult:
    session: AuthSession
    student: Student


class AuthService:
    """Use cases: student signup and rate-limited login by roll number."""

    def __init__(self, identity: IdentityService, students: StudentRepository, limiter: RateLimiter):
        self._identity = identity
        self._students = students
        self._limiter = limiter

    def sign_up(self, *, roll_number: str, name: str, email: str, password: str, now: Optional[datetime] = None) -> Student:
        roll_number = validate_roll_number(roll_number)
        name = validate_name(name)
        email = validate_email(email)
        validate_signup_password(password)

        self._identity.sign_up(email, password, {"roll_number": roll_number, "name": name}, now=now)
        student = self._students.get_by_roll_number(roll_number, principal=Principal.service())
        if not student:
            raise DomainError("Student profile was not created")

        logger.info("Registered student %s", roll_number)
        return student

    def login(
        self,
        roll_number: str,
        password: str,
        *,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LoginResult:
        roll_number = validate_roll_number(roll_number)
        validate_login_password(password)

        self._limiter.check(roll_number, now=now)

        try:
            student = self._students.get_by_roll_number(roll_number, principal=Principal.service())
            if not student or not student.email:
                raise AuthError(INVALID_CREDENTIALS)
            session = self._identity.sign_in(student.email, password, now=now)
        except AuthError:
            self._limiter.record(roll_number, success=False, ip_address=ip_address, now=now)
            logger.info("Failed login for %s", roll_number)
            raise AuthError(INVALID_CREDENTIALS) from None
        except Exception as e:
            self._limiter.record(roll_number, success=False, ip_address=ip_address, now=now)
            logger.exception("Login error for %s", roll_number)
            raise AuthError("An error occurred during login") from e

        self._limiter.record(roll_number, success=True, ip_address=ip_address, now=now)
        logger.info("Login successful for %s", roll_number)
        return LoginResult(session=session, student=student)

    def current(self, access_token: Optional[str], *, now: Optional[datetime] = None) -> Optional[LoginResult]:
        session = self._identity.get_session(access_token, now=now)
        if not session:
            return None
        student = self._students.get_by_user_id(session.user_id, principal=Principal.student(session.user_id))
        if not student:
            return None
        return LoginResult(session=session, student=student)

    def logout(self, access_token: Optional[str]) -> None:
        self._identity.sign_out(access_token)
