from __future__ import annotations
from datetime import datetime

from flask import Blueprint, request, current_app

from shift_api.common.auth import requires_roles
from shift_api.common.http import ok, fail, from_outcome
from shift_api.models.user import MANAGER_ROLES
from shift_api.services import tenant_scope
from shift_api.services.assignments import AssignmentService

bp = Blueprint("schedule", __name__, url_prefix="/api/v1/schedule")


# ---------- helpers ----------
def _parse_date_any(s: str | None):
    """
    Accepts:
      - 'YYYY-MM-DD'  (canonical)
      - 'DD-MM-YYYY'  (legacy support)
    """
    if not s:
        return None
    for f in ("%Y-%m-%d", "%d-%m-%Y"):
        try:
            return datetime.strptime(s, f).date()
        except ValueError:
            pass
    return None


def _as_int(val, field):
    if val in (None, "", "null"):
        return None
    if isinstance(val, bool):
        raise ValueError(f"{field} must be integer")
    try:
        return int(val)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be integer")


def _json():
    d = request.get_json(silent=True)
    return d if isinstance(d, dict) else {}


def _service() -> AssignmentService:
    return AssignmentService()


# ---------- routes ----------

@bp.get("/companies")
@requires_roles()
def my_companies(caller):
    """Company ids the caller may read and (for managers) schedule."""
    return ok(sorted(tenant_scope.authorized_company_ids(caller)))


@bp.get("/staffing")
@requires_roles()
def get_staffing(caller):
    """
    GET /api/v1/schedule/staffing?company_id=1&shift_type_id=3&date=2024-10-02

    Returns required/assigned/version for the slot. `version` is what the
    client must send back as `concurrency` when adjusting.
    """
    try:
        company_id = _as_int(request.args.get("company_id"), "company_id")
        shift_type_id = _as_int(request.args.get("shift_type_id"), "shift_type_id")
    except ValueError as ex:
        return fail(str(ex), 422)
    work_date = _parse_date_any(request.args.get("date"))
    if company_id is None or shift_type_id is None or work_date is None:
        return fail("company_id, shift_type_id and date are required", 422)
    return from_outcome(_service().staffing_snapshot(caller, company_id, shift_type_id, work_date))


@bp.post("/staffing/adjust")
@requires_roles(*MANAGER_ROLES)
def adjust_staffing(caller):
    """
    Body:
    {
      "company_id": 1,
      "shift_type_id": 3,
      "date": "2024-10-02",
      "delta": 1,
      "concurrency": 0
    }
    409 with code "concurrency" means the client must reload and retry.
    """
    d = _json()
    try:
        company_id = _as_int(d.get("company_id"), "company_id")
        shift_type_id = _as_int(d.get("shift_type_id"), "shift_type_id")
        delta = _as_int(d.get("delta"), "delta")
        version = _as_int(d.get("concurrency", d.get("version")), "concurrency")
    except ValueError as ex:
        return fail(str(ex), 422)
    work_date = _parse_date_any(d.get("date"))
    if company_id is None or shift_type_id is None or work_date is None or delta is None:
        return fail("company_id, shift_type_id, date and delta are required", 422)
    if version is None:
        return fail("concurrency is required", 422)

    current_app.logger.info(
        "Adjust staffing: date=%s shift_type_id=%s delta=%s", work_date, shift_type_id, delta
    )
    out = _service().adjust_staffing(caller, company_id, shift_type_id, work_date, delta, version)
    return from_outcome(out)


@bp.post("/instances")
@requires_roles(*MANAGER_ROLES)
def open_instance(caller):
    d = _json()
    try:
        company_id = _as_int(d.get("company_id"), "company_id")
        shift_type_id = _as_int(d.get("shift_type_id"), "shift_type_id")
    except ValueError as ex:
        return fail(str(ex), 422)
    work_date = _parse_date_any(d.get("date"))
    if company_id is None or shift_type_id is None or work_date is None:
        return fail("company_id, shift_type_id and date are required", 422)
    return from_outcome(_service().ensure_instance(caller, company_id, shift_type_id, work_date))


@bp.get("/instances/<int:instance_id>/can-assign")
@requires_roles()
def can_assign(caller, instance_id: int):
    try:
        user_id = _as_int(request.args.get("user_id"), "user_id")
    except ValueError as ex:
        return fail(str(ex), 422)
    if user_id is None:
        return fail("user_id is required", 422)
    return from_outcome(_service().check(caller, instance_id, user_id))


@bp.post("/assignments")
@requires_roles(*MANAGER_ROLES)
def create_assignment(caller):
    d = _json()
    try:
        company_id = _as_int(d.get("company_id"), "company_id")
        instance_id = _as_int(d.get("shift_instance_id"), "shift_instance_id")
        user_id = _as_int(d.get("user_id"), "user_id")
    except ValueError as ex:
        return fail(str(ex), 422)
    if company_id is None or instance_id is None or user_id is None:
        return fail("company_id, shift_instance_id and user_id are required", 422)
    out = _service().assign_user_to_shift(
        caller, company_id, instance_id, user_id, shift_name=d.get("shift_name")
    )
    return from_outcome(out, status=201)


@bp.delete("/assignments/<int:assignment_id>")
@requires_roles(*MANAGER_ROLES)
def delete_assignment(caller, assignment_id: int):
    return from_outcome(_service().remove_assignment(caller, assignment_id))


@bp.post("/assignments/<int:assignment_id>/trainee")
@requires_roles(*MANAGER_ROLES)
def add_trainee(caller, assignment_id: int):
    try:
        trainee_id = _as_int(_json().get("trainee_user_id"), "trainee_user_id")
    except ValueError as ex:
        return fail(str(ex), 422)
    if trainee_id is None:
        return fail("trainee_user_id is required", 422)
    return from_outcome(_service().attach_trainee(caller, assignment_id, trainee_id))


@bp.delete("/assignments/<int:assignment_id>/trainee")
@requires_roles(*MANAGER_ROLES)
def remove_trainee(caller, assignment_id: int):
    return from_outcome(_service().detach_trainee(caller, assignment_id))


@bp.get("/notifications")
@requires_roles()
def my_notifications(caller):
    scope = tenant_scope.resolve_scope(caller)
    unread = request.args.get("unread") in ("1", "true", "yes")
    rows = tenant_scope.notifications_for_user(scope, caller.caller_id, unread_only=unread)
    return ok([{
        "id": n.id,
        "kind": n.kind,
        "title": n.title,
        "message": n.message,
        "is_read": n.is_read,
        "created_at": n.created_at.isoformat() if n.created_at else None,
        "related_entity_id": n.related_entity_id,
        "related_entity_type": n.related_entity_type,
    } for n in rows])
