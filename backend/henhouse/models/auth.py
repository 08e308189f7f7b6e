from __future__ import annotations

from ..extensions import db
from henhouse.time_utils import to_utc_z, format_money

ROLE_ADMIN = "admin"
ROLE_EMPLOYEE = "employee"
ROLES = (ROLE_ADMIN, ROLE_EMPLOYEE)


class User(db.Model):
    """
    Staff accounts (admins and employees).

    Accounts are created by an administrator. The Shift workflow flips
    is_on_duty; admin edit screens change rate and role.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("hourly_rate >= 0", name="ck_users_hourly_rate_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    full_name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_EMPLOYEE)
    hourly_rate = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    is_on_duty = db.Column(db.Boolean, nullable=False, default=False, index=True)

    # Identifier of the employee in an external system (game server, badge, ...)
    external_id = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "role": self.role,
            "hourly_rate": format_money(self.hourly_rate),
            "is_on_duty": self.is_on_duty,
            "external_id": self.external_id,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer session issued at login.

    The client keeps the plaintext token in its durable storage; only the
    SHA-256 hash is stored here. A session stays valid until revoked or
    until its user row is deleted.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)

    user = db.relationship(
        "User",
        backref=db.backref("sessions", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "is_revoked": self.is_revoked,
        }
