from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from shift_api.extensions import db
from shift_api.models.shift import ShiftAssignment, ShiftInstance, ShiftType
from shift_api.models.user import MANAGER_ROLES, ROLE_TRAINEE, User
from shift_api.services import conflict_checker, staffing, tenant_scope
from shift_api.services.notifications import NotificationSink
from shift_api.services.results import DUPLICATE, FORBIDDEN, NOT_FOUND, VALIDATION, Outcome
from shift_api.services.tenant_scope import Caller

log = logging.getLogger(__name__)

MSG_OVER_ASSIGN = "Cannot over-assign. Increase required first."
MSG_DUPLICATE = "User is already assigned to this shift."


class AssignmentService:
    """
    Entry points used by the HTTP layer and the CLI.

    Each call resolves the caller's CompanyScope afresh; nothing tenant
    related is cached between calls.
    """

    def __init__(self, notifier: Optional[NotificationSink] = None):
        self.notifier = notifier or NotificationSink()

    # ---------- helpers ----------

    @staticmethod
    def _manager_scope(caller: Caller):
        scope = tenant_scope.resolve_scope(caller)
        if caller.role not in MANAGER_ROLES:
            tenant_scope.log_denial(scope, caller.company_id, "Role", caller.role,
                                    "manager role required")
            return scope, Outcome.refuse(FORBIDDEN, "Manager role required.")
        return scope, None

    def _notify_after_commit(self, send):
        # failures here never undo the primary operation, already committed
        try:
            send()
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            log.error("Notification commit failed", exc_info=True)

    # ---------- staffing ----------

    def adjust_staffing(self, caller: Caller, company_id: int, shift_type_id: int,
                        work_date: date, delta: int, expected_version: Optional[int]) -> Outcome:
        scope, denied = self._manager_scope(caller)
        if denied:
            return denied
        denied = tenant_scope.require_company(scope, company_id)
        if denied:
            return denied
        # the shift type must belong to exactly this company, not just to the scope
        _, denied = tenant_scope.require_entity(scope, ShiftType, shift_type_id, company_id)
        if denied:
            return denied

        log.info("Adjust staffing: caller=%s company=%s date=%s shift_type=%s delta=%s",
                 caller.caller_id, company_id, work_date, shift_type_id, delta)
        return staffing.adjust_required(company_id, shift_type_id, work_date, delta, expected_version)

    def staffing_snapshot(self, caller: Caller, company_id: int, shift_type_id: int,
                          work_date: date) -> Outcome:
        scope = tenant_scope.resolve_scope(caller).narrow(company_id)
        if not scope.company_ids or tenant_scope.get_shift_type(scope, shift_type_id) is None:
            tenant_scope.log_denial(scope, company_id, "ShiftType", shift_type_id,
                                    "snapshot outside scope or unknown shift type")
            return Outcome.refuse(NOT_FOUND, "Shift not found.")
        return Outcome.success(**staffing.snapshot(company_id, shift_type_id, work_date))

    def ensure_instance(self, caller: Caller, company_id: int, shift_type_id: int,
                        work_date: date) -> Outcome:
        """Open (lazily create) the instance for a slot so users can be assigned to it."""
        scope, denied = self._manager_scope(caller)
        if denied:
            return denied
        denied = tenant_scope.require_company(scope, company_id)
        if denied:
            return denied
        _, denied = tenant_scope.require_entity(scope, ShiftType, shift_type_id, company_id)
        if denied:
            return denied
        try:
            staffing.get_or_create_instance(company_id, shift_type_id, work_date)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return Outcome.success(**staffing.snapshot(company_id, shift_type_id, work_date))

    # ---------- eligibility ----------

    def check(self, caller: Caller, shift_instance_id: int, user_id: int) -> Outcome:
        scope = tenant_scope.resolve_scope(caller)
        inst = tenant_scope.get_instance(scope, shift_instance_id)
        if inst is None:
            return Outcome.refuse(NOT_FOUND, "Shift not found.")
        return Outcome.success(**conflict_checker.explain(scope, user_id, inst))

    # ---------- assignments ----------

    def assign_user_to_shift(self, caller: Caller, company_id: int, shift_instance_id: int,
                             user_id: int, shift_name: Optional[str] = None) -> Outcome:
        scope, denied = self._manager_scope(caller)
        if denied:
            return denied
        denied = tenant_scope.require_company(scope, company_id)
        if denied:
            return denied
        inst, denied = tenant_scope.require_entity(scope, ShiftInstance, shift_instance_id, company_id)
        if denied:
            return denied
        st = tenant_scope.get_shift_type(scope.narrow(inst.company_id), inst.shift_type_id)
        if st is None:
            return Outcome.refuse(NOT_FOUND, "Shift type missing.")
        _, denied = tenant_scope.require_entity(scope, User, user_id, inst.company_id)
        if denied:
            return denied

        log.info("Attempt add user %s to shift_instance %s", user_id, inst.id)
        try:
            assigned = tenant_scope.count_assignments(scope, inst.id)
            if assigned >= inst.staffing_required:
                return Outcome.refuse(VALIDATION, MSG_OVER_ASSIGN)

            if tenant_scope.assignment_exists(scope, inst, user_id):
                return Outcome.refuse(DUPLICATE, MSG_DUPLICATE)

            conflict = conflict_checker.can_assign(scope, user_id, inst)
            if not conflict.allowed:
                log.warning("Conflict add user %s to shift_instance %s: %s",
                            user_id, inst.id, "; ".join(conflict.reasons))
                return Outcome.refuse(VALIDATION, " ".join(conflict.reasons))

            a = ShiftAssignment(
                company_id=inst.company_id,  # never the caller-supplied id
                shift_instance_id=inst.id,
                user_id=user_id,
            )
            try:
                with db.session.begin_nested():
                    db.session.add(a)
            except IntegrityError:
                db.session.rollback()
                return Outcome.refuse(DUPLICATE, MSG_DUPLICATE)

            # a concurrent insert may have filled the last slot meanwhile
            now_assigned = tenant_scope.count_assignments(scope, inst.id)
            if now_assigned > inst.staffing_required:
                db.session.rollback()
                return Outcome.refuse(VALIDATION, MSG_OVER_ASSIGN)

            if assigned == 0 and shift_name and shift_name.strip():
                inst.name = shift_name.strip()

            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        payload = dict(
            assignment_id=a.id,
            shift_instance_id=inst.id,
            company_id=inst.company_id,
            user_id=user_id,
            assigned=now_assigned,
            required=inst.staffing_required,
        )
        self._notify_after_commit(
            lambda: self.notifier.shift_added(inst.company_id, user_id, st, inst.work_date, a.id)
        )
        return Outcome.success(**payload)

    def remove_assignment(self, caller: Caller, assignment_id: int) -> Outcome:
        scope, denied = self._manager_scope(caller)
        if denied:
            return denied
        _, denied = tenant_scope.require_entity(scope, ShiftAssignment, assignment_id)
        if denied:
            log.warning("Assignment %s not removable by caller %s: %s",
                        assignment_id, caller.caller_id, denied.kind)
            return denied
        a = tenant_scope.get_assignment(scope, assignment_id)
        if a is None:
            tenant_scope.log_denial(scope, None, "ShiftAssignment", assignment_id,
                                    "instance company does not match assignment")
            return Outcome.refuse(FORBIDDEN, "ShiftAssignment belongs to another company.")

        inst = db.session.get(ShiftInstance, a.shift_instance_id)
        st = db.session.get(ShiftType, inst.shift_type_id)
        company_id, user_id, work_date = a.company_id, a.user_id, inst.work_date

        log.info("Removing assignment %s from shift_instance %s", assignment_id, inst.id)
        try:
            db.session.delete(a)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        self._notify_after_commit(
            lambda: self.notifier.shift_removed(company_id, user_id, st, work_date, assignment_id)
        )
        return Outcome.success(
            assignment_id=assignment_id,
            shift_instance_id=inst.id,
            assigned=tenant_scope.count_assignments(scope, inst.id),
            required=inst.staffing_required,
        )

    # ---------- trainee shadowing ----------

    def attach_trainee(self, caller: Caller, assignment_id: int, trainee_user_id: int) -> Outcome:
        scope, denied = self._manager_scope(caller)
        if denied:
            return denied
        _, denied = tenant_scope.require_entity(scope, ShiftAssignment, assignment_id)
        if denied:
            return denied
        a = tenant_scope.get_assignment(scope, assignment_id)
        if a is None:
            return Outcome.refuse(FORBIDDEN, "ShiftAssignment belongs to another company.")
        trainee, denied = tenant_scope.require_entity(scope, User, trainee_user_id, a.company_id)
        if denied:
            return denied

        if not trainee.is_active or trainee.role != ROLE_TRAINEE:
            return Outcome.refuse(VALIDATION, "Selected user is not an active trainee.")
        if trainee.id == a.user_id:
            return Outcome.refuse(VALIDATION, "A user cannot shadow their own shift.")

        inst = db.session.get(ShiftInstance, a.shift_instance_id)
        company_scope = scope.narrow(a.company_id)
        if tenant_scope.has_approved_time_off(company_scope, trainee.id, inst.work_date):
            return Outcome.refuse(VALIDATION, "Approved time-off covers this date.")

        employee = db.session.get(User, a.user_id)
        st = db.session.get(ShiftType, inst.shift_type_id)
        try:
            a.trainee_user_id = trainee.id
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        log.info("Trainee %s assigned to shift assignment %s by user %s",
                 trainee.id, assignment_id, caller.caller_id)
        self._notify_after_commit(lambda: self.notifier.trainee_added(
            a.company_id, trainee.id, trainee.full_name, employee.id, employee.full_name,
            st, inst.work_date, assignment_id,
        ))
        return Outcome.success(assignment_id=assignment_id, trainee_user_id=trainee.id)

    def detach_trainee(self, caller: Caller, assignment_id: int) -> Outcome:
        scope, denied = self._manager_scope(caller)
        if denied:
            return denied
        _, denied = tenant_scope.require_entity(scope, ShiftAssignment, assignment_id)
        if denied:
            return denied
        a = tenant_scope.get_assignment(scope, assignment_id)
        if a is None:
            return Outcome.refuse(FORBIDDEN, "ShiftAssignment belongs to another company.")
        if a.trainee_user_id is None:
            return Outcome.refuse(VALIDATION, "No trainee on this assignment.")

        trainee_id = a.trainee_user_id
        inst = db.session.get(ShiftInstance, a.shift_instance_id)
        st = db.session.get(ShiftType, inst.shift_type_id)
        try:
            a.trainee_user_id = None
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        self._notify_after_commit(lambda: self.notifier.trainee_removed(
            a.company_id, trainee_id, st, inst.work_date, assignment_id,
        ))
        return Outcome.success(assignment_id=assignment_id, trainee_user_id=None)
