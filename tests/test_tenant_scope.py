import logging
import os
from datetime import date, time

import pytest

from shift_api import create_app
from shift_api.extensions import db
from shift_api.models.master import Company
from shift_api.models.shift import ShiftAssignment, ShiftInstance, ShiftType
from shift_api.models.user import (
    ROLE_DIRECTOR,
    ROLE_EMPLOYEE,
    ROLE_MANAGER,
    ROLE_OWNER,
    DirectorCompany,
    User,
)
from shift_api.services import tenant_scope
from shift_api.services.assignments import AssignmentService
from shift_api.services.results import FORBIDDEN, NOT_FOUND
from shift_api.services.tenant_scope import Caller

D = date(2024, 10, 2)


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    with app.app_context():
        db.create_all()
        yield app


@pytest.fixture
def world(app):
    a = Company(code="A", name="Company A")
    b = Company(code="B", name="Company B")
    c = Company(code="C", name="Company C")
    db.session.add_all([a, b, c]); db.session.flush()

    def user(company, email, role):
        u = User(company_id=company.id, email=email, full_name=email.split("@")[0], role=role)
        db.session.add(u)
        return u

    w = {
        "a": a, "b": b, "c": c,
        "owner": user(a, "owner@a.test", ROLE_OWNER),
        "director": user(a, "director@a.test", ROLE_DIRECTOR),
        "manager_a": user(a, "manager@a.test", ROLE_MANAGER),
        "alice": user(a, "alice@a.test", ROLE_EMPLOYEE),
        "bob_b": user(b, "bob@b.test", ROLE_EMPLOYEE),
    }
    db.session.flush()
    w["type_a"] = ShiftType(company_id=a.id, key="MORNING", name="Morning", start_time=time(8), end_time=time(16))
    w["type_b"] = ShiftType(company_id=b.id, key="MORNING", name="Morning", start_time=time(8), end_time=time(16))
    db.session.add_all([w["type_a"], w["type_b"]])
    db.session.commit()
    return w


def _caller(u):
    return Caller.from_user(u)


def test_owner_sees_every_company(world):
    caller = _caller(world["owner"])
    assert tenant_scope.authorized_company_ids(caller) == {world["a"].id, world["b"].id, world["c"].id}
    scope = tenant_scope.resolve_scope(caller)
    assert scope.all_companies
    assert scope.allows(world["c"].id)


def test_director_sees_active_grants_only(world):
    d = world["director"]
    db.session.add_all([
        DirectorCompany(user_id=d.id, company_id=world["a"].id),
        DirectorCompany(user_id=d.id, company_id=world["b"].id),
    ])
    db.session.commit()
    assert tenant_scope.authorized_company_ids(_caller(d)) == {world["a"].id, world["b"].id}

    grant = DirectorCompany.query.filter_by(user_id=d.id, company_id=world["b"].id).first()
    grant.revoke()
    db.session.commit()
    assert tenant_scope.authorized_company_ids(_caller(d)) == {world["a"].id}


def test_manager_and_employee_see_home_company(world):
    assert tenant_scope.authorized_company_ids(_caller(world["manager_a"])) == {world["a"].id}
    assert tenant_scope.authorized_company_ids(_caller(world["alice"])) == {world["a"].id}


def test_narrow_outside_scope_is_empty(world):
    scope = tenant_scope.resolve_scope(_caller(world["manager_a"]))
    narrowed = scope.narrow(world["b"].id)
    assert narrowed.company_ids == frozenset()
    assert not narrowed.allows(world["b"].id)
    assert tenant_scope.get_shift_type(narrowed, world["type_a"].id) is None


def test_scoped_lookups_hide_foreign_rows(world):
    scope = tenant_scope.resolve_scope(_caller(world["manager_a"]))
    assert tenant_scope.get_shift_type(scope, world["type_a"].id) is not None
    assert tenant_scope.get_shift_type(scope, world["type_b"].id) is None
    assert tenant_scope.get_user(scope, world["bob_b"].id) is None
    assert tenant_scope.get_company(scope, world["b"].id) is None


def test_require_entity_distinguishes_missing_from_foreign(world, caplog):
    scope = tenant_scope.resolve_scope(_caller(world["manager_a"]))

    row, denied = tenant_scope.require_entity(scope, ShiftType, 424242)
    assert row is None and denied.kind == NOT_FOUND

    with caplog.at_level(logging.WARNING, logger="shift_api.audit"):
        row, denied = tenant_scope.require_entity(scope, ShiftType, world["type_b"].id)
    assert row is None and denied.kind == FORBIDDEN
    assert "tenant.denied" in caplog.text
    assert f"caller={world['manager_a'].id}" in caplog.text


def test_assignment_with_mismatched_company_is_invisible(world):
    inst = ShiftInstance(company_id=world["a"].id, shift_type_id=world["type_a"].id, work_date=D)
    db.session.add(inst); db.session.flush()
    bad = ShiftAssignment(company_id=world["b"].id, shift_instance_id=inst.id, user_id=world["alice"].id)
    db.session.add(bad); db.session.commit()

    owner_scope = tenant_scope.resolve_scope(_caller(world["owner"]))
    assert tenant_scope.get_assignment(owner_scope, bad.id) is None


def test_manager_cannot_adjust_foreign_shift_type(world):
    svc = AssignmentService()
    caller = _caller(world["manager_a"])

    # own company id, foreign shift type
    out = svc.adjust_staffing(caller, world["a"].id, world["type_b"].id, D, +1, 0)
    assert out.kind == FORBIDDEN
    # foreign company id too
    out = svc.adjust_staffing(caller, world["b"].id, world["type_b"].id, D, +1, 0)
    assert out.kind == FORBIDDEN

    assert ShiftInstance.query.filter_by(company_id=world["b"].id).count() == 0
    assert ShiftInstance.query.filter_by(shift_type_id=world["type_b"].id).count() == 0


def test_employee_cannot_adjust(world):
    out = AssignmentService().adjust_staffing(
        _caller(world["alice"]), world["a"].id, world["type_a"].id, D, +1, 0)
    assert out.kind == FORBIDDEN
    assert ShiftInstance.query.count() == 0


def test_director_adjusts_granted_company(world):
    d = world["director"]
    db.session.add(DirectorCompany(user_id=d.id, company_id=world["b"].id))
    db.session.commit()

    out = AssignmentService().adjust_staffing(_caller(d), world["b"].id, world["type_b"].id, D, +1, 0)
    assert out.ok
    assert out.data["required"] == 1
