"""
Every tenant-scoped read in the core goes through this module and takes a
CompanyScope as its first argument. There is no ambient filter: a function
that forgets the scope does not type-check against these signatures.

Failure policy:
  - mutation paths (require_company / require_entity) answer FORBIDDEN when
    the row exists under a company outside the scope, NOT_FOUND when it
    does not exist at all;
  - plain lookups (get_*) simply return None for rows outside the scope.
Every denial is written to the `shift_api.audit` logger with caller id,
target company and entity id.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import FrozenSet, List, Optional, Set

from sqlalchemy import false, true

from shift_api.extensions import db
from shift_api.models.master import Company
from shift_api.models.notification import UserNotification
from shift_api.models.shift import ShiftAssignment, ShiftInstance, ShiftType
from shift_api.models.time_off import STATUS_APPROVED, SwapRequest, TimeOffRequest
from shift_api.models.user import (
    ROLE_DIRECTOR,
    ROLE_OWNER,
    DirectorCompany,
    User,
)
from shift_api.services.results import FORBIDDEN, NOT_FOUND, Outcome

audit = logging.getLogger("shift_api.audit")


@dataclass(frozen=True)
class Caller:
    caller_id: int
    company_id: int
    role: str

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        return cls(caller_id=user.id, company_id=user.company_id, role=user.role)


@dataclass(frozen=True)
class CompanyScope:
    caller: Caller
    company_ids: FrozenSet[int]
    all_companies: bool = False

    def allows(self, company_id: Optional[int]) -> bool:
        if company_id is None:
            return False
        return self.all_companies or company_id in self.company_ids

    def narrow(self, company_id: int) -> "CompanyScope":
        """Scope restricted to one company; empty when company_id is not allowed."""
        ids = frozenset({company_id}) if self.allows(company_id) else frozenset()
        return replace(self, company_ids=ids, all_companies=False)

    def clause(self, column):
        if self.all_companies:
            return true()
        if not self.company_ids:
            return false()
        return column.in_(self.company_ids)


# ---------- resolution ----------

def authorized_company_ids(caller: Caller) -> Set[int]:
    if caller.role == ROLE_OWNER:
        return {row[0] for row in db.session.query(Company.id).all()}
    if caller.role == ROLE_DIRECTOR:
        q = (
            db.session.query(DirectorCompany.company_id)
            .filter(DirectorCompany.user_id == caller.caller_id,
                    DirectorCompany.is_deleted.is_(False))
            .distinct()
        )
        return {row[0] for row in q.all()}
    return {caller.company_id}


def resolve_scope(caller: Caller) -> CompanyScope:
    if caller.role == ROLE_OWNER:
        return CompanyScope(caller, frozenset(), all_companies=True)
    return CompanyScope(caller, frozenset(authorized_company_ids(caller)))


def authorize(scope: CompanyScope, company_id: int) -> bool:
    return scope.allows(company_id)


def log_denial(scope: CompanyScope, company_id, entity: str, entity_id, reason: str):
    audit.warning(
        "tenant.denied caller=%s role=%s company=%s entity=%s id=%s reason=%s",
        scope.caller.caller_id, scope.caller.role, company_id, entity, entity_id, reason,
    )


def require_company(scope: CompanyScope, company_id: int) -> Optional[Outcome]:
    """None when allowed, otherwise a FORBIDDEN refusal (logged)."""
    if authorize(scope, company_id):
        return None
    log_denial(scope, company_id, "Company", company_id, "company not in scope")
    return Outcome.refuse(FORBIDDEN, "You do not have access to this company.")


def require_entity(scope: CompanyScope, model, entity_id: int, company_id: Optional[int] = None):
    """
    Re-validate a client-supplied foreign key.

    Returns (row, None) when the row exists, sits inside the scope and, if
    `company_id` is given, belongs to exactly that company. Otherwise
    returns (None, Outcome) with NOT_FOUND or FORBIDDEN.
    """
    row = db.session.get(model, entity_id) if entity_id is not None else None
    name = model.__name__
    if row is None:
        return None, Outcome.refuse(NOT_FOUND, f"{name} not found.")
    if not scope.allows(row.company_id):
        log_denial(scope, row.company_id, name, entity_id, "row outside caller scope")
        return None, Outcome.refuse(FORBIDDEN, f"{name} belongs to another company.")
    if company_id is not None and row.company_id != company_id:
        log_denial(scope, company_id, name, entity_id,
                   f"row belongs to company {row.company_id}")
        return None, Outcome.refuse(FORBIDDEN, f"{name} belongs to another company.")
    return row, None


# ---------- scoped lookups ----------

def get_company(scope: CompanyScope, company_id: int) -> Optional[Company]:
    return Company.query.filter(Company.id == company_id, scope.clause(Company.id)).first()


def get_user(scope: CompanyScope, user_id: int) -> Optional[User]:
    return User.query.filter(User.id == user_id, scope.clause(User.company_id)).first()


def get_shift_type(scope: CompanyScope, shift_type_id: int) -> Optional[ShiftType]:
    return ShiftType.query.filter(
        ShiftType.id == shift_type_id, scope.clause(ShiftType.company_id)
    ).first()


def get_instance(scope: CompanyScope, instance_id: int) -> Optional[ShiftInstance]:
    return ShiftInstance.query.filter(
        ShiftInstance.id == instance_id, scope.clause(ShiftInstance.company_id)
    ).first()


def find_instance(scope: CompanyScope, company_id: int, shift_type_id: int,
                  work_date: date) -> Optional[ShiftInstance]:
    return ShiftInstance.query.filter(
        ShiftInstance.company_id == company_id,
        ShiftInstance.shift_type_id == shift_type_id,
        ShiftInstance.work_date == work_date,
        scope.clause(ShiftInstance.company_id),
    ).first()


def get_assignment(scope: CompanyScope, assignment_id: int) -> Optional[ShiftAssignment]:
    # both the denormalised company and the owning instance's company must match
    return (
        ShiftAssignment.query
        .join(ShiftInstance, ShiftInstance.id == ShiftAssignment.shift_instance_id)
        .filter(
            ShiftAssignment.id == assignment_id,
            ShiftAssignment.company_id == ShiftInstance.company_id,
            scope.clause(ShiftInstance.company_id),
        )
        .first()
    )


def get_time_off(scope: CompanyScope, request_id: int) -> Optional[TimeOffRequest]:
    return (
        TimeOffRequest.query
        .join(User, User.id == TimeOffRequest.user_id)
        .filter(
            TimeOffRequest.id == request_id,
            TimeOffRequest.company_id == User.company_id,
            scope.clause(TimeOffRequest.company_id),
        )
        .first()
    )


def get_swap_request(scope: CompanyScope, request_id: int) -> Optional[SwapRequest]:
    swap = (
        SwapRequest.query
        .join(ShiftAssignment, ShiftAssignment.id == SwapRequest.from_assignment_id)
        .join(ShiftInstance, ShiftInstance.id == ShiftAssignment.shift_instance_id)
        .filter(
            SwapRequest.id == request_id,
            SwapRequest.company_id == ShiftInstance.company_id,
            scope.clause(ShiftInstance.company_id),
        )
        .first()
    )
    if swap is not None and swap.to_user_id is not None:
        recipient = db.session.get(User, swap.to_user_id)
        if recipient is None or recipient.company_id != swap.company_id:
            return None
    return swap


def notifications_for_user(scope: CompanyScope, user_id: int, unread_only: bool = False) -> List[UserNotification]:
    q = UserNotification.query.filter(
        UserNotification.user_id == user_id,
        scope.clause(UserNotification.company_id),
    )
    if unread_only:
        q = q.filter(UserNotification.is_read.is_(False))
    return q.order_by(UserNotification.created_at.desc(), UserNotification.id.desc()).all()


def has_approved_time_off(scope: CompanyScope, user_id: int, on_date: date) -> bool:
    q = TimeOffRequest.query.filter(
        TimeOffRequest.user_id == user_id,
        TimeOffRequest.status == STATUS_APPROVED,
        TimeOffRequest.start_date <= on_date,
        TimeOffRequest.end_date >= on_date,
        scope.clause(TimeOffRequest.company_id),
    )
    return db.session.query(q.exists()).scalar()


def user_shift_rows(scope: CompanyScope, user_id: int, start: date, end: date):
    """
    (work_date, start_time, end_time) for every assignment of `user_id` whose
    instance falls in [start, end]. Assignment, instance and shift type are
    each bound to the scope.
    """
    return (
        db.session.query(ShiftInstance.work_date, ShiftType.start_time, ShiftType.end_time)
        .select_from(ShiftAssignment)
        .join(ShiftInstance, ShiftInstance.id == ShiftAssignment.shift_instance_id)
        .join(ShiftType, ShiftType.id == ShiftInstance.shift_type_id)
        .filter(
            ShiftAssignment.user_id == user_id,
            ShiftInstance.work_date >= start,
            ShiftInstance.work_date <= end,
            scope.clause(ShiftAssignment.company_id),
            scope.clause(ShiftInstance.company_id),
            scope.clause(ShiftType.company_id),
        )
        .all()
    )


def count_assignments(scope: CompanyScope, instance_id: int) -> int:
    return ShiftAssignment.query.filter(
        ShiftAssignment.shift_instance_id == instance_id,
        scope.clause(ShiftAssignment.company_id),
    ).count()


def assignment_exists(scope: CompanyScope, instance: ShiftInstance, user_id: int) -> bool:
    q = ShiftAssignment.query.filter(
        ShiftAssignment.company_id == instance.company_id,
        ShiftAssignment.shift_instance_id == instance.id,
        ShiftAssignment.user_id == user_id,
        scope.clause(ShiftAssignment.company_id),
    )
    return db.session.query(q.exists()).scalar()
