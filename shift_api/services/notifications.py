from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from shift_api.extensions import db
from shift_api.models.notification import (
    KIND_SHIFT_ADDED,
    KIND_SHIFT_REMOVED,
    KIND_TRAINEE_ADDED,
    KIND_TRAINEE_REMOVED,
    UserNotification,
)

log = logging.getLogger(__name__)


class NotificationSink:
    """
    Fire-and-forget delivery. `notify` never raises: each notification is
    written in its own savepoint and any failure is logged and dropped, so
    the primary operation is never rolled back because of it. Caller commits.
    """

    def notify(self, company_id: int, user_id: int, kind: str, title: str, message: str,
               related_entity_id: Optional[int] = None,
               related_entity_type: Optional[str] = None) -> bool:
        try:
            with db.session.begin_nested():
                db.session.add(UserNotification(
                    company_id=company_id,
                    user_id=user_id,
                    kind=kind,
                    title=title,
                    message=message,
                    is_read=False,
                    created_at=datetime.utcnow(),
                    related_entity_id=related_entity_id,
                    related_entity_type=related_entity_type,
                ))
            log.info("Created notification %s for user %s: %s", kind, user_id, title)
            return True
        except Exception:
            log.error("Error creating notification %s for user %s", kind, user_id, exc_info=True)
            return False

    # ---- shift helpers ----

    @staticmethod
    def _shift_text(shift_name, work_date, start, end) -> str:
        return f"{shift_name} on {work_date:%d/%m/%Y} ({start:%H:%M}-{end:%H:%M})"

    def shift_added(self, company_id, user_id, shift_type, work_date, assignment_id=None):
        text = self._shift_text(shift_type.name, work_date, shift_type.start_time, shift_type.end_time)
        return self.notify(company_id, user_id, KIND_SHIFT_ADDED, "New shift assignment",
                           f"You have been assigned to {text}.", assignment_id, "ShiftAssignment")

    def shift_removed(self, company_id, user_id, shift_type, work_date, assignment_id=None):
        text = self._shift_text(shift_type.name, work_date, shift_type.start_time, shift_type.end_time)
        return self.notify(company_id, user_id, KIND_SHIFT_REMOVED, "Shift assignment removed",
                           f"You are no longer assigned to {text}.", assignment_id, "ShiftAssignment")

    def trainee_added(self, company_id, trainee_id, trainee_name, employee_id, employee_name,
                      shift_type, work_date, assignment_id):
        text = f"{shift_type.name} on {work_date:%b %d, %Y}"
        self.notify(company_id, trainee_id, KIND_TRAINEE_ADDED, "Shadowing assignment",
                    f"You are now shadowing {employee_name} for {text}", assignment_id, "ShiftAssignment")
        self.notify(company_id, employee_id, KIND_TRAINEE_ADDED, "Trainee assigned",
                    f"{trainee_name} will shadow your shift: {text}", assignment_id, "ShiftAssignment")

    def trainee_removed(self, company_id, trainee_id, shift_type, work_date, assignment_id):
        text = f"{shift_type.name} on {work_date:%b %d, %Y}"
        self.notify(company_id, trainee_id, KIND_TRAINEE_REMOVED, "Shadowing canceled",
                    f"Your shadowing of {text} was canceled.", assignment_id, "ShiftAssignment")
