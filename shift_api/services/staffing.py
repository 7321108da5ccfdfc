from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from shift_api.extensions import db
from shift_api.models.shift import ShiftAssignment, ShiftInstance
from shift_api.services.results import CONCURRENCY, VALIDATION, Outcome

log = logging.getLogger(__name__)

MSG_BELOW_ZERO = "Cannot go below zero."
MSG_RELOAD = "Concurrent update detected. Reload the page."


def _find(company_id: int, shift_type_id: int, work_date: date) -> Optional[ShiftInstance]:
    return ShiftInstance.query.filter_by(
        company_id=company_id, shift_type_id=shift_type_id, work_date=work_date
    ).first()


def _assigned_count(instance_id: int) -> int:
    return ShiftAssignment.query.filter_by(shift_instance_id=instance_id).count()


def _create(company_id: int, shift_type_id: int, work_date: date) -> Tuple[ShiftInstance, bool]:
    """
    Insert a fresh instance (required=0, version=0) inside a savepoint.
    Returns (instance, created). Losing a concurrent creation race returns
    the winner's row with created=False.
    """
    inst = ShiftInstance(
        company_id=company_id,
        shift_type_id=shift_type_id,
        work_date=work_date,
        staffing_required=0,
        concurrency=0,
        updated_at=datetime.utcnow(),
    )
    try:
        with db.session.begin_nested():
            db.session.add(inst)
        return inst, True
    except IntegrityError:
        log.info("shift instance (%s, %s, %s) created concurrently; reusing",
                 company_id, shift_type_id, work_date)
        existing = _find(company_id, shift_type_id, work_date)
        if existing is None:
            raise
        return existing, False


def get_or_create_instance(company_id: int, shift_type_id: int, work_date: date) -> ShiftInstance:
    """Lazy creation used by the assignment path. Caller commits."""
    inst = _find(company_id, shift_type_id, work_date)
    if inst is None:
        inst, _ = _create(company_id, shift_type_id, work_date)
    return inst


def snapshot(company_id: int, shift_type_id: int, work_date: date) -> dict:
    inst = _find(company_id, shift_type_id, work_date)
    if inst is None:
        return {"instance_id": None, "required": 0, "assigned": 0, "version": 0, "name": ""}
    return {
        "instance_id": inst.id,
        "required": inst.staffing_required,
        "assigned": _assigned_count(inst.id),
        "version": inst.concurrency,
        "name": inst.name or "",
    }


def _diagnose(instance_id: int, expected_version: int, new_required: int) -> Outcome:
    """Explain why the compare-and-increment matched no row."""
    current = db.session.get(ShiftInstance, instance_id)
    if current is None or current.concurrency != expected_version:
        return Outcome.refuse(CONCURRENCY, MSG_RELOAD)
    assigned = _assigned_count(instance_id)
    if new_required < assigned:
        return Outcome.refuse(VALIDATION, f"Cannot set required below assigned ({assigned}).")
    return Outcome.refuse(CONCURRENCY, MSG_RELOAD)


def adjust_required(company_id: int, shift_type_id: int, work_date: date,
                    delta: int, expected_version: Optional[int]) -> Outcome:
    """
    Add `delta` to the required headcount of (company, shift type, date).

    The caller must already have authorized `company_id` and verified that
    the shift type belongs to it.

    `expected_version` must equal the stored version exactly; there is no
    "0 means don't care". A missing instance is created on the fly
    (required=0, version=0) unless delta is negative.

    The write is a single UPDATE guarded by the version and the assigned
    count, so nothing can interleave between check and write. Any refusal
    or error rolls the session back.
    """
    try:
        inst = _find(company_id, shift_type_id, work_date)
        expected = expected_version
        if inst is None:
            if delta < 0:
                return Outcome.refuse(VALIDATION, MSG_BELOW_ZERO)
            inst, created = _create(company_id, shift_type_id, work_date)
            if created:
                expected = inst.concurrency

        if inst.concurrency != expected:
            log.warning("Concurrency mismatch for shift_instance=%s: sent=%s, current=%s",
                        inst.id, expected_version, inst.concurrency)
            db.session.rollback()
            return Outcome.refuse(CONCURRENCY, MSG_RELOAD)

        new_required = inst.staffing_required + delta
        if new_required < 0:
            db.session.rollback()
            return Outcome.refuse(VALIDATION, MSG_BELOW_ZERO)

        assigned = _assigned_count(inst.id)
        if new_required < assigned:
            db.session.rollback()
            return Outcome.refuse(VALIDATION, f"Cannot set required below assigned ({assigned}).")

        assigned_sq = (
            select(func.count(ShiftAssignment.id))
            .where(ShiftAssignment.shift_instance_id == inst.id)
            .scalar_subquery()
        )
        stmt = (
            update(ShiftInstance)
            .where(
                ShiftInstance.id == inst.id,
                ShiftInstance.concurrency == expected,
                assigned_sq <= new_required,
            )
            .values(
                staffing_required=new_required,
                concurrency=ShiftInstance.concurrency + 1,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        instance_id = inst.id
        res = db.session.execute(stmt)
        if res.rowcount != 1:
            db.session.rollback()
            refusal = _diagnose(instance_id, expected, new_required)
            db.session.rollback()
            log.warning("Compare-and-increment lost for shift_instance=%s: %s",
                        instance_id, refusal.message)
            return refusal

        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        log.exception("adjust_required failed company=%s type=%s date=%s",
                      company_id, shift_type_id, work_date)
        raise

    log.info("Adjusted staffing shift_instance=%s delta=%s -> required=%s version=%s",
             instance_id, delta, new_required, expected + 1)
    return Outcome.success(
        instance_id=instance_id,
        required=new_required,
        assigned=assigned,
        version=expected + 1,
    )
