from datetime import datetime

from werkzeug.security import generate_password_hash, check_password_hash

from shift_api.extensions import db

ROLE_OWNER = "owner"
ROLE_DIRECTOR = "director"
ROLE_MANAGER = "manager"
ROLE_EMPLOYEE = "employee"
ROLE_TRAINEE = "trainee"

ROLES = (ROLE_OWNER, ROLE_DIRECTOR, ROLE_MANAGER, ROLE_EMPLOYEE, ROLE_TRAINEE)
MANAGER_ROLES = (ROLE_OWNER, ROLE_DIRECTOR, ROLE_MANAGER)


class User(db.Model):
    __tablename__ = "users"

    id            = db.Column(db.Integer, primary_key=True)
    company_id    = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    email         = db.Column(db.String(255), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False, default="")
    full_name     = db.Column(db.String(255), nullable=False)
    role          = db.Column(db.String(20), nullable=False, default=ROLE_EMPLOYEE)  # owner|director|manager|employee|trainee
    is_active     = db.Column(db.Boolean, nullable=False, default=True)
    created_at    = db.Column(db.DateTime, default=datetime.utcnow)

    # --- helpers ---
    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return bool(self.password_hash) and check_password_hash(self.password_hash, raw)

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES


class DirectorCompany(db.Model):
    """
    Grants a director access to one company. Revoking keeps the row
    (is_deleted + deleted_at) so grant history stays auditable.
    """

    __tablename__ = "director_companies"

    id         = db.Column(db.Integer, primary_key=True)
    user_id    = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    granted_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    granted_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    deleted_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.Index("ix_director_company_active", "user_id", "company_id", "is_deleted"),
    )

    def revoke(self):
        self.is_deleted = True
        self.deleted_at = datetime.utcnow()
