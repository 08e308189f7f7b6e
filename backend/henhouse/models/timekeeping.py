from __future__ import annotations

from ..extensions import db
from henhouse.time_utils import to_utc_z, format_money


class Shift(db.Model):
    """
    Clock-in/clock-out record.

    LIFECYCLE:
    - open: end_time is NULL, the user is on duty
    - closed: end_time and total_hours are set on clock-out

    At most one open shift per user. The schema does not enforce it;
    timekeeping_service does.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_user_end", "user_id", "end_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    # Fractional wall-clock hours, computed on clock-out
    total_hours = db.Column(db.Numeric(10, 4), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship(
        "User",
        backref=db.backref("shifts", lazy=True, cascade="all, delete-orphan"),
    )

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time) if self.end_time else None,
            "total_hours": format_money(self.total_hours),
            "created_at": to_utc_z(self.created_at),
        }
