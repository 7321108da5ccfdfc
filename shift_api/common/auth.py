# shift_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import current_app, g
from flask_jwt_extended import jwt_required, get_jwt_identity

from shift_api.common.http import fail
from shift_api.extensions import db
from shift_api.models.user import User
from shift_api.services.tenant_scope import Caller


# ---------- helpers ----------

def _load_user(ident) -> Optional[User]:
    try:
        uid = int(ident)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, uid)


def current_caller() -> Optional[Caller]:
    """
    Caller for the current request, read fresh from the database so role
    and company changes apply without waiting for the token to expire.
    Cached on `g` only, i.e. for this request.
    """
    caller = getattr(g, "_caller", None)
    if caller is not None:
        return caller
    user = _load_user(get_jwt_identity())
    if user is None or not user.is_active:
        return None
    g._caller = Caller.from_user(user)
    return g._caller


# ---------- decorators ----------

def requires_roles(*codes: str):
    """
    Require an authenticated, active user holding one of the given roles.
    With no codes any authenticated user passes. The resolved Caller is
    passed to the view as its first argument.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            caller = current_caller()
            if caller is None:
                return fail("Unauthorized", status=401)
            if codes and caller.role not in codes:
                current_app.logger.warning(
                    "Role deny user=%s role=%s needs=%s", caller.caller_id, caller.role, ",".join(codes)
                )
                return fail("Forbidden", status=403, code="auth.forbidden")
            return fn(caller, *args, **kwargs)
        return inner
    return outer
