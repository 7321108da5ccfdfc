from __future__ import annotations

import logging

from shift_api.extensions import db
from shift_api.models.master import AppConfig

log = logging.getLogger(__name__)

REST_HOURS = "RestHours"
WEEKLY_HOURS_CAP = "WeeklyHoursCap"

DEFAULT_REST_HOURS = 8
DEFAULT_WEEKLY_HOURS_CAP = 40


def get_config_int(company_id: int, key: str, default: int) -> int:
    """Company override for `key`, or `default` when unset or not an integer."""
    row = AppConfig.query.filter_by(company_id=company_id, key=key).first()
    if row is None:
        return default
    try:
        return int(row.value)
    except (TypeError, ValueError):
        log.warning("config %s=%r for company %s is not an integer; using %s",
                    key, row.value, company_id, default)
        return default


def rest_hours(company_id: int) -> int:
    return get_config_int(company_id, REST_HOURS, DEFAULT_REST_HOURS)


def weekly_hours_cap(company_id: int) -> int:
    return get_config_int(company_id, WEEKLY_HOURS_CAP, DEFAULT_WEEKLY_HOURS_CAP)


def set_config(company_id: int, key: str, value) -> AppConfig:
    """Upsert a company config row. Caller commits."""
    row = AppConfig.query.filter_by(company_id=company_id, key=key).first()
    if row is None:
        row = AppConfig(company_id=company_id, key=key)
        db.session.add(row)
    row.value = str(value)
    return row
