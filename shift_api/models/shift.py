from datetime import datetime

from shift_api.extensions import db


class ShiftType(db.Model):
    __tablename__ = "shift_types"
    id = db.Column(db.Integer, primary_key=True)
    company_id  = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    key         = db.Column(db.String(20), nullable=False)   # MORNING, NOON, NIGHT, ...
    name        = db.Column(db.String(60), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    start_time  = db.Column(db.Time, nullable=False)
    end_time    = db.Column(db.Time, nullable=False)         # end <= start => wraps to next day
    created_at  = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    __table_args__ = (
        db.UniqueConstraint("company_id", "key", name="uq_shift_type_company_key"),
    )


class ShiftInstance(db.Model):
    """
    One occurrence of a ShiftType on one date for one company.

    `concurrency` is the optimistic-concurrency version. It is only ever
    changed by the compare-and-increment in services.staffing.
    """

    __tablename__ = "shift_instances"
    id = db.Column(db.Integer, primary_key=True)
    company_id        = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    shift_type_id     = db.Column(db.Integer, db.ForeignKey("shift_types.id", ondelete="CASCADE"), nullable=False, index=True)
    work_date         = db.Column(db.Date, nullable=False, index=True)
    name              = db.Column(db.String(120), nullable=False, default="")
    staffing_required = db.Column(db.Integer, nullable=False, default=0)
    concurrency       = db.Column(db.Integer, nullable=False, default=0)
    updated_at        = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    __table_args__ = (
        db.UniqueConstraint("company_id", "shift_type_id", "work_date", name="uq_shift_instance_company_type_date"),
        db.CheckConstraint("staffing_required >= 0", name="ck_shift_instance_required_nonneg"),
    )


class ShiftAssignment(db.Model):
    __tablename__ = "shift_assignments"
    id = db.Column(db.Integer, primary_key=True)
    # denormalised from the instance; always equal to shift_instances.company_id
    company_id        = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    shift_instance_id = db.Column(db.Integer, db.ForeignKey("shift_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id           = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    trainee_user_id   = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at        = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    __table_args__ = (
        db.UniqueConstraint("company_id", "shift_instance_id", "user_id", name="uq_shift_assignment_company_instance_user"),
        db.Index("ix_shift_assignment_user_instance", "user_id", "shift_instance_id"),
    )
