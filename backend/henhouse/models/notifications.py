from __future__ import annotations

from ..extensions import db
from henhouse.time_utils import to_utc_z

EVENT_SALES = "sales"
EVENT_SHIFTS = "shifts"
EVENT_STOCK = "stock"
EVENT_ALL = "all"
EVENT_TYPES = (EVENT_SALES, EVENT_SHIFTS, EVENT_STOCK, EVENT_ALL)


class WebhookConfig(db.Model):
    """
    Registered chat webhook. event_type selects which notifications it
    receives; "all" receives every category.
    """
    __tablename__ = "webhook_configs"
    __table_args__ = (
        db.Index("ix_webhook_configs_active_event", "is_active", "event_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=True)
    url = db.Column(db.String(1024), nullable=False)
    event_type = db.Column(db.String(16), nullable=False, default=EVENT_ALL)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "event_type": self.event_type,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
