import os
from datetime import date, time, timedelta

import pytest

from shift_api import create_app
from shift_api.extensions import db
from shift_api.models.master import Company
from shift_api.models.shift import ShiftAssignment, ShiftInstance, ShiftType
from shift_api.models.time_off import STATUS_APPROVED, STATUS_PENDING, TimeOffRequest
from shift_api.models.user import ROLE_EMPLOYEE, ROLE_MANAGER, User
from shift_api.services import policy_config
from shift_api.services.conflict_checker import can_assign
from shift_api.services.tenant_scope import Caller, resolve_scope

WED = date(2024, 10, 2)


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
    db.session.add_all([a, b]); db.session.flush()
    manager = User(company_id=a.id, email="m@a.test", full_name="Manager A", role=ROLE_MANAGER)
    alice = User(company_id=a.id, email="alice@a.test", full_name="Alice", role=ROLE_EMPLOYEE)
    manager_b = User(company_id=b.id, email="m@b.test", full_name="Manager B", role=ROLE_MANAGER)
    db.session.add_all([manager, alice, manager_b]); db.session.flush()
    policy_config.set_config(a.id, policy_config.REST_HOURS, 8)
    policy_config.set_config(a.id, policy_config.WEEKLY_HOURS_CAP, 40)
    db.session.commit()
    return {
        "a": a, "b": b, "alice": alice,
        "scope": resolve_scope(Caller.from_user(manager)),
        "scope_b": resolve_scope(Caller.from_user(manager_b)),
    }


def _type(company, key, start, end):
    st = ShiftType(company_id=company.id, key=key, name=key.title(), start_time=start, end_time=end)
    db.session.add(st); db.session.flush()
    return st


def _instance(st, d):
    inst = ShiftInstance(company_id=st.company_id, shift_type_id=st.id, work_date=d, staffing_required=5)
    db.session.add(inst); db.session.flush()
    return inst


def _assign(user, st, d):
    inst = _instance(st, d)
    db.session.add(ShiftAssignment(company_id=inst.company_id, shift_instance_id=inst.id, user_id=user.id))
    db.session.commit()
    return inst


def test_free_user_is_allowed(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    res = can_assign(world["scope"], world["alice"].id, _instance(morning, WED))
    assert res.allowed
    assert res.reasons == []


def test_overlap_is_refused(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    late = _type(world["a"], "LATE", time(15, 59), time(23, 59))
    _assign(world["alice"], morning, WED)

    res = can_assign(world["scope"], world["alice"].id, _instance(late, WED))
    assert not res.allowed
    assert res.reasons == ["Overlap with existing assignment."]


def test_touching_shifts_only_hit_rest_rule(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    noon = _type(world["a"], "NOON", time(16), time(0))
    _assign(world["alice"], morning, WED)
    policy_config.set_config(world["a"].id, policy_config.REST_HOURS, 0)
    db.session.commit()

    res = can_assign(world["scope"], world["alice"].id, _instance(noon, WED))
    assert res.allowed


def test_overnight_shift_from_previous_day_overlaps(world):
    night = _type(world["a"], "NIGHT", time(22), time(6))
    early = _type(world["a"], "EARLY", time(5), time(13))
    _assign(world["alice"], night, WED - timedelta(days=1))

    res = can_assign(world["scope"], world["alice"].id, _instance(early, WED))
    assert res.reasons == ["Overlap with existing assignment."]


def test_rest_after_previous_shift(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    late = _type(world["a"], "LATE", time(23, 59), time(7))
    midnight = _type(world["a"], "MIDNIGHT", time(0), time(6))
    _assign(world["alice"], morning, WED)

    res = can_assign(world["scope"], world["alice"].id, _instance(late, WED))
    assert res.reasons == ["Rest period too short (< 8h) from previous shift."]

    res = can_assign(world["scope"], world["alice"].id, _instance(midnight, WED + timedelta(days=1)))
    assert res.allowed


def test_rest_before_next_shift(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    night = _type(world["a"], "NIGHT", time(22), time(6))
    _assign(world["alice"], morning, WED + timedelta(days=1))

    res = can_assign(world["scope"], world["alice"].id, _instance(night, WED))
    assert res.reasons == ["Rest period too short (< 8h) before next shift."]


def test_weekly_cap(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    long_day = _type(world["a"], "LONG", time(8), time(17))
    monday = date(2024, 9, 30)
    for i in range(4):
        _assign(world["alice"], morning, monday + timedelta(days=i))
    friday = monday + timedelta(days=4)

    assert can_assign(world["scope"], world["alice"].id, _instance(morning, friday)).allowed

    res = can_assign(world["scope"], world["alice"].id, _instance(long_day, friday))
    assert res.reasons == ["Weekly hours cap exceeded (> 40h)."]


def test_shifts_in_other_weeks_do_not_count_towards_cap(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    policy_config.set_config(world["a"].id, policy_config.WEEKLY_HOURS_CAP, 8)
    db.session.commit()
    _assign(world["alice"], morning, date(2024, 9, 29))  # previous Sunday

    assert can_assign(world["scope"], world["alice"].id, _instance(morning, date(2024, 9, 30))).allowed


def test_approved_time_off_is_refused(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    db.session.add(TimeOffRequest(company_id=world["a"].id, user_id=world["alice"].id,
                                  start_date=WED, end_date=WED, status=STATUS_APPROVED))
    db.session.commit()

    res = can_assign(world["scope"], world["alice"].id, _instance(morning, WED))
    assert res.reasons == ["Approved time-off covers this date."]


def test_pending_time_off_is_ignored(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    db.session.add(TimeOffRequest(company_id=world["a"].id, user_id=world["alice"].id,
                                  start_date=WED - timedelta(days=1), end_date=WED + timedelta(days=1),
                                  status=STATUS_PENDING))
    db.session.commit()

    assert can_assign(world["scope"], world["alice"].id, _instance(morning, WED)).allowed


def test_inactive_or_unknown_user(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    inst = _instance(morning, WED)
    world["alice"].is_active = False
    db.session.commit()

    assert can_assign(world["scope"], world["alice"].id, inst).reasons == ["User inactive or not found."]
    assert can_assign(world["scope"], 9999, inst).reasons == ["User inactive or not found."]


def test_instance_outside_scope(world):
    morning = _type(world["a"], "MORNING", time(8), time(16))
    res = can_assign(world["scope_b"], world["alice"].id, _instance(morning, WED))
    assert res.reasons == ["Not authorized for this company."]


def test_policy_falls_back_to_default_on_garbage(world):
    policy_config.set_config(world["a"].id, policy_config.REST_HOURS, "eight")
    db.session.commit()
    assert policy_config.rest_hours(world["a"].id) == policy_config.DEFAULT_REST_HOURS
    assert policy_config.weekly_hours_cap(world["b"].id) == policy_config.DEFAULT_WEEKLY_HOURS_CAP
