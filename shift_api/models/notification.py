from datetime import datetime

from shift_api.extensions import db

KIND_SHIFT_ADDED = "shift_added"
KIND_SHIFT_REMOVED = "shift_removed"
KIND_TRAINEE_ADDED = "trainee_shadowing_added"
KIND_TRAINEE_REMOVED = "trainee_shadowing_removed"


class UserNotification(db.Model):
    __tablename__ = "user_notifications"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = db.Column(db.String(40), nullable=False)
    title = db.Column(db.String(500), nullable=False)
    message = db.Column(db.String(1000), nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    read_at = db.Column(db.DateTime, nullable=True)

    # optional back-reference to the entity the notification is about
    related_entity_id = db.Column(db.Integer, nullable=True)
    related_entity_type = db.Column(db.String(50), nullable=True)  # "ShiftAssignment", ...
