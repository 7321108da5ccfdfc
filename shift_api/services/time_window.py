from __future__ import annotations

from datetime import date, datetime, time as _time, timedelta
from typing import Tuple

Window = Tuple[datetime, datetime]


def _dt(d: date, t: _time) -> datetime:
    return datetime.combine(d, t)


def window_for(start: _time, end: _time, work_date: date) -> Window:
    """Concrete [start, end) for clock times on work_date; end <= start wraps past midnight."""
    s = _dt(work_date, start)
    e = _dt(work_date, end)
    if end <= start:
        e += timedelta(days=1)
    return s, e


def shift_window(shift_type, work_date: date) -> Window:
    return window_for(shift_type.start_time, shift_type.end_time, work_date)


def hours_between(a: datetime, b: datetime) -> float:
    return (b - a).total_seconds() / 3600.0


def duration_hours(shift_type) -> float:
    s, e = shift_window(shift_type, date.today())
    return hours_between(s, e)


def windows_overlap(a: Window, b: Window) -> bool:
    # half-open: touching endpoints do not overlap
    return a[0] < b[1] and b[0] < a[1]


def week_start(d: date) -> date:
    """Monday of the week containing d."""
    return d - timedelta(days=d.weekday())


def week_bounds(d: date) -> Tuple[date, date]:
    ws = week_start(d)
    return ws, ws + timedelta(days=6)
