from datetime import datetime

from shift_api.extensions import db


class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class AppConfig(db.Model):
    """
    Per-company policy knobs stored as key/value strings.

    Known keys:
      RestHours       -> minimum hours between two shifts of one user (default 8)
      WeeklyHoursCap  -> maximum scheduled hours per Mon-Sun week (default 40)
    """

    __tablename__ = "app_configs"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer,
        db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    key = db.Column(db.String(64), nullable=False)
    value = db.Column(db.String(255), nullable=False, default="")

    __table_args__ = (
        db.UniqueConstraint("company_id", "key", name="uq_app_config_company_key"),
    )
