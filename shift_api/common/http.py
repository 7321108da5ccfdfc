# shift_api/common/http.py
from flask import jsonify

from shift_api.services.results import CONCURRENCY, DUPLICATE, FORBIDDEN, NOT_FOUND, VALIDATION

# refusal kind -> HTTP status
REFUSAL_STATUS = {
    VALIDATION: 422,
    CONCURRENCY: 409,
    DUPLICATE: 409,
    FORBIDDEN: 403,
    NOT_FOUND: 404,
}


def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status


def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    if errors: err["errors"] = errors
    return jsonify({"success": False, "error": err}), status


def from_outcome(out, status=200):
    """Envelope for a service Outcome; refusals carry their kind as error code."""
    if out.ok:
        return ok(out.data, status=status)
    return fail(out.message, status=REFUSAL_STATUS.get(out.kind, 400), code=out.kind)
