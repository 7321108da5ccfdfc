import os
from datetime import time

import pytest

from shift_api import create_app
from shift_api.extensions import db
from shift_api.models.master import Company
from shift_api.models.shift import ShiftInstance, ShiftType
from shift_api.models.user import ROLE_EMPLOYEE, ROLE_MANAGER, User

PASSWORD = "secret-pass"


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        a = Company(code="A", name="Company A")
        b = Company(code="B", name="Company B")
        db.session.add_all([a, b]); db.session.flush()
        for company, email, role in (
            (a, "manager@a.test", ROLE_MANAGER),
            (a, "alice@a.test", ROLE_EMPLOYEE),
            (b, "manager@b.test", ROLE_MANAGER),
        ):
            u = User(company_id=company.id, email=email, full_name=email, role=role)
            u.set_password(PASSWORD)
            db.session.add(u)
        db.session.add_all([
            ShiftType(company_id=a.id, key="MORNING", name="Morning", start_time=time(8), end_time=time(16)),
            ShiftType(company_id=b.id, key="MORNING", name="Morning", start_time=time(8), end_time=time(16)),
        ])
        db.session.flush()
        app.config["TEST_IDS"] = {
            "a": a.id,
            "b": b.id,
            "type_a": ShiftType.query.filter_by(company_id=a.id).one().id,
            "type_b": ShiftType.query.filter_by(company_id=b.id).one().id,
            "alice": User.query.filter_by(email="alice@a.test").one().id,
        }
        db.session.commit()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ids(app):
    return app.config["TEST_IDS"]


def _auth(client, email):
    r = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200, r.get_json()
    return {"Authorization": f"Bearer {r.get_json()['data']['access']}"}


def _adjust(client, headers, ids, delta, version, company="a", shift_type="type_a"):
    return client.post("/api/v1/schedule/staffing/adjust", headers=headers, json={
        "company_id": ids[company],
        "shift_type_id": ids[shift_type],
        "date": "2024-10-02",
        "delta": delta,
        "concurrency": version,
    })


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.get_json()["data"] == {"status": "ok"}


def test_login_rejects_bad_password(client):
    r = client.post("/api/v1/auth/login", json={"email": "alice@a.test", "password": "nope"})
    assert r.status_code == 401
    assert r.get_json()["success"] is False


def test_me_lists_company_ids(client, ids):
    r = client.get("/api/v1/auth/me", headers=_auth(client, "manager@a.test"))
    assert r.status_code == 200
    assert r.get_json()["data"]["company_ids"] == [ids["a"]]


def test_requires_token(client, ids):
    r = client.get(f"/api/v1/schedule/staffing?company_id={ids['a']}&shift_type_id={ids['type_a']}&date=2024-10-02")
    assert r.status_code == 401


def test_adjust_and_read_staffing(client, ids):
    h = _auth(client, "manager@a.test")
    r = _adjust(client, h, ids, 1, 0)
    assert r.status_code == 200
    assert r.get_json()["data"]["version"] == 1

    r = _adjust(client, h, ids, 1, 0)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "concurrency"

    r = client.get(
        f"/api/v1/schedule/staffing?company_id={ids['a']}&shift_type_id={ids['type_a']}&date=02-10-2024",
        headers=h,
    )
    data = r.get_json()["data"]
    assert (data["required"], data["assigned"], data["version"]) == (1, 0, 1)


def test_adjust_requires_concurrency(client, ids):
    h = _auth(client, "manager@a.test")
    r = client.post("/api/v1/schedule/staffing/adjust", headers=h, json={
        "company_id": ids["a"], "shift_type_id": ids["type_a"], "date": "2024-10-02", "delta": 1,
    })
    assert r.status_code == 422


def test_adjust_foreign_shift_type_is_forbidden(client, app, ids):
    h = _auth(client, "manager@a.test")
    r = _adjust(client, h, ids, 1, 0, shift_type="type_b")
    assert r.status_code == 403
    assert r.get_json()["error"]["code"] == "forbidden"
    with app.app_context():
        assert ShiftInstance.query.filter_by(company_id=ids["b"]).count() == 0


def test_employee_cannot_adjust(client, ids):
    r = _adjust(client, _auth(client, "alice@a.test"), ids, 1, 0)
    assert r.status_code == 403


def test_assign_flow(client, ids):
    h = _auth(client, "manager@a.test")
    inst_id = _adjust(client, h, ids, 1, 0).get_json()["data"]["instance_id"]

    r = client.get(f"/api/v1/schedule/instances/{inst_id}/can-assign?user_id={ids['alice']}", headers=h)
    assert r.get_json()["data"] == {"allowed": True, "reasons": []}

    body = {"company_id": ids["a"], "shift_instance_id": inst_id, "user_id": ids["alice"]}
    r = client.post("/api/v1/schedule/assignments", headers=h, json=body)
    assert r.status_code == 201
    assignment_id = r.get_json()["data"]["assignment_id"]

    r = client.post("/api/v1/schedule/assignments", headers=h, json=body)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "duplicate"

    alice = _auth(client, "alice@a.test")
    r = client.get("/api/v1/schedule/notifications?unread=1", headers=alice)
    assert [n["kind"] for n in r.get_json()["data"]] == ["shift_added"]

    r = client.delete(f"/api/v1/schedule/assignments/{assignment_id}", headers=_auth(client, "manager@b.test"))
    assert r.status_code == 403

    r = client.delete(f"/api/v1/schedule/assignments/{assignment_id}", headers=h)
    assert r.status_code == 200
    assert r.get_json()["data"]["assigned"] == 0


def test_over_assign_returns_422(client, ids):
    h = _auth(client, "manager@a.test")
    r = client.post("/api/v1/schedule/instances", headers=h, json={
        "company_id": ids["a"], "shift_type_id": ids["type_a"], "date": "2024-10-02",
    })
    assert r.status_code == 200
    inst_id = r.get_json()["data"]["instance_id"]

    r = client.post("/api/v1/schedule/assignments", headers=h, json={
        "company_id": ids["a"], "shift_instance_id": inst_id, "user_id": ids["alice"],
    })
    assert r.status_code == 422
    assert r.get_json()["error"]["message"] == "Cannot over-assign. Increase required first."


def test_bad_integer_is_rejected(client):
    h = _auth(client, "manager@a.test")
    r = client.get("/api/v1/schedule/staffing?company_id=x&shift_type_id=1&date=2024-10-02", headers=h)
    assert r.status_code == 422
