"""Row-level authorization policy table.

Every repository asks this module before returning or writing a row, so the
rules live in one place instead of inside each query. Rules are keyed by
(table, action); a missing key means deny. The service principal is used for
trusted server-side lookups (rate limiting, roll-number resolution, the
signup hook) and bypasses the table.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..core.enums import Action, PrincipalRole
from ..core.exceptions import AuthorizationError


@dataclass(frozen=True)
class Principal:
    role: PrincipalRole
    user_id: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(role=PrincipalRole.ANONYMOUS)

    @classmethod
    def service(cls) -> "Principal":
        return cls(role=PrincipalRole.SERVICE)

    @classmethod
    def student(cls, user_id: str) -> "Principal":
        return cls(role=PrincipalRole.STUDENT, user_id=str(user_id))

    @property
    def is_service(self) -> bool:
        return self.role == PrincipalRole.SERVICE


@dataclass(frozen=True)
class OwnedStudent:
    student_id: str
    roll_number: str
    email: Optional[str]


class OwnershipResolver(Protocol):
    def students_for_user(self, user_id: str) -> Sequence[OwnedStudent]:
        raise NotImplementedError


@dataclass
class PolicyContext:
    principal: Principal
    resolver: OwnershipResolver
    _owned: Optional[Sequence[OwnedStudent]] = field(default=None, repr=False)

    def owned_students(self) -> Sequence[OwnedStudent]:
        if self._owned is None:
            if self.principal.user_id is None:
                self._owned = []
            else:
                self._owned = list(self.resolver.students_for_user(self.principal.user_id))
        return self._owned

    def owned_student_ids(self) -> set:
        return {s.student_id for s in self.owned_students()}

    def owned_identifiers(self) -> set:
        out = set()
        for s in self.owned_students():
            out.add(s.roll_number)
            if s.email:
                out.add(s.email)
        return out


Rule = Callable[[PolicyContext, Mapping[str, Any]], bool]


def _always(ctx: PolicyContext, row: Mapping[str, Any]) -> bool:
    return True


def _owns_student_row(ctx: PolicyContext, row: Mapping[str, Any]) -> bool:
    return ctx.principal.user_id is not None and str(row.get("user_id")) == ctx.principal.user_id


def _owns_referenced_student(ctx: PolicyContext, row: Mapping[str, Any]) -> bool:
    return str(row.get("student_id")) in ctx.owned_student_ids()


def _owns_identifier(ctx: PolicyContext, row: Mapping[str, Any]) -> bool:
    return row.get("identifier") in ctx.owned_identifiers()


DEFAULT_POLICIES: Dict[Tuple[str, Action], Rule] = {
    ("students", Action.SELECT): _owns_student_row,
    ("students", Action.UPDATE): _owns_student_row,
    ("attendance_records", Action.SELECT): _owns_referenced_student,
    ("attendance_records", Action.INSERT): _owns_referenced_student,
    ("login_attempts", Action.SELECT): _owns_identifier,
    ("login_attempts", Action.INSERT): _always,
}


class AccessPolicy:
    def __init__(self, resolver: OwnershipResolver, policies: Optional[Mapping[Tuple[str, Action], Rule]] = None):
        self._resolver = resolver
        self._policies = dict(DEFAULT_POLICIES if policies is None else policies)

    def allows(self, principal: Principal, table: str, action: Action, row: Mapping[str, Any]) -> bool:
        if principal.is_service:
            return True
        rule = self._policies.get((table, action))
        if rule is None:
            return False
        return bool(rule(PolicyContext(principal, self._resolver), row))

    def check(self, principal: Principal, table: str, action: Action, row: Mapping[str, Any]) -> None:
        if not self.allows(principal, table, action, row):
            raise AuthorizationError(f"Not allowed to {action.value} {table} row")

    def filter_rows(self, principal: Principal, table: str, rows: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
        if principal.is_service:
            return list(rows)
        rule = self._policies.get((table, Action.SELECT))
        if rule is None:
            return []
        ctx = PolicyContext(principal, self._resolver)
        return [r for r in rows if rule(ctx, r)]
