from datetime import timedelta

from flask import Blueprint, request
from flask_jwt_extended import create_access_token

from shift_api.common.auth import requires_roles
from shift_api.common.http import ok, fail
from shift_api.extensions import db
from shift_api.models.user import User
from shift_api.services import tenant_scope

bp = Blueprint("auth_v1", __name__, url_prefix="/api/v1/auth")


def _user_payload(u: User):
    return {"id": u.id, "email": u.email, "full_name": u.full_name,
            "role": u.role, "company_id": u.company_id}


@bp.post("/login")
def login():
    data = request.get_json(silent=True, force=True)
    if not isinstance(data, dict):
        data = {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    u = User.query.filter_by(email=email).first()
    if not u or not u.is_active or not u.check_password(password):
        return fail("Invalid credentials", status=401)

    claims = {"role": u.role, "company_id": u.company_id, "email": u.email}
    access = create_access_token(identity=str(u.id), additional_claims=claims,
                                 expires_delta=timedelta(days=1))
    return ok({"access": access, "user": _user_payload(u)})


@bp.get("/me")
@requires_roles()
def me(caller):
    u = db.session.get(User, caller.caller_id)
    data = _user_payload(u)
    data["company_ids"] = sorted(tenant_scope.authorized_company_ids(caller))
    return ok(data)
