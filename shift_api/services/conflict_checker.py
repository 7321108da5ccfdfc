from __future__ import annotations

import logging
from datetime import timedelta

from shift_api.models.shift import ShiftInstance
from shift_api.services import policy_config, tenant_scope
from shift_api.services.results import ConflictResult
from shift_api.services.tenant_scope import CompanyScope
from shift_api.services.time_window import (
    duration_hours,
    hours_between,
    shift_window,
    week_bounds,
    week_start,
    window_for,
    windows_overlap,
)

log = logging.getLogger(__name__)


def can_assign(scope: CompanyScope, user_id: int, instance: ShiftInstance) -> ConflictResult:
    """
    Decide whether `user_id` may work `instance`.

    Order: existence, approved time-off, overlap, rest period, weekly cap.
    Returns on the first failing check. Read-only; business refusals and
    missing rows come back as ConflictResult, never as exceptions.
    """
    company_id = instance.company_id
    scope = scope.narrow(company_id)
    if not scope.company_ids:
        tenant_scope.log_denial(scope, company_id, "ShiftInstance", instance.id,
                                "conflict check outside caller scope")
        return ConflictResult.fail("Not authorized for this company.")

    user = tenant_scope.get_user(scope, user_id)
    if user is None or not user.is_active:
        return ConflictResult.fail("User inactive or not found.")

    st = tenant_scope.get_shift_type(scope, instance.shift_type_id)
    if st is None:
        return ConflictResult.fail("Shift type missing.")

    work_date = instance.work_date

    if tenant_scope.has_approved_time_off(scope, user_id, work_date):
        return ConflictResult.fail("Approved time-off covers this date.")

    start, end = shift_window(st, work_date)

    # Monday-1 .. Monday+7 so overnight shifts touching the week edges are seen
    pad_from = week_start(work_date) - timedelta(days=1)
    pad_to = pad_from + timedelta(days=8)
    windows = [
        window_for(r.start_time, r.end_time, r.work_date)
        for r in tenant_scope.user_shift_rows(scope, user_id, pad_from, pad_to)
    ]

    for w in windows:
        if windows_overlap(w, (start, end)):
            return ConflictResult.fail("Overlap with existing assignment.")

    before = max((w for w in windows if w[1] <= start), key=lambda w: w[1], default=None)
    after = min((w for w in windows if w[0] >= end), key=lambda w: w[0], default=None)

    rest = policy_config.rest_hours(company_id)
    if before is not None and hours_between(before[1], start) < rest:
        return ConflictResult.fail(f"Rest period too short (< {rest}h) from previous shift.")
    if after is not None and hours_between(end, after[0]) < rest:
        return ConflictResult.fail(f"Rest period too short (< {rest}h) before next shift.")

    wk_from, wk_to = week_bounds(work_date)
    total = sum(
        hours_between(*window_for(r.start_time, r.end_time, r.work_date))
        for r in tenant_scope.user_shift_rows(scope, user_id, wk_from, wk_to)
    )
    total += duration_hours(st)

    cap = policy_config.weekly_hours_cap(company_id)
    if total > cap:
        return ConflictResult.fail(f"Weekly hours cap exceeded (> {cap}h).")

    return ConflictResult.ok()


def explain(scope: CompanyScope, user_id: int, instance: ShiftInstance) -> dict:
    """Serializable form of can_assign for API responses."""
    res = can_assign(scope, user_id, instance)
    if not res.allowed:
        log.info("conflict user=%s instance=%s: %s", user_id, instance.id, "; ".join(res.reasons))
    return {"allowed": res.allowed, "reasons": res.reasons}
