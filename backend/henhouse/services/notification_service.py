# Overview: Service-layer operations for chat notifications and webhook configs.

"""
Notification Service

Builds chat embeds for sales, shifts and low stock and hands them to the
webhook notifier. Delivery is fire-and-forget: nothing in here raises into
the calling workflow.

Payload shape:
    {"embeds": [{"title", "description", "color", "fields", "timestamp"}]}
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db, notifier
from ..models import WebhookConfig
from ..models.notifications import (
    EVENT_ALL,
    EVENT_SALES,
    EVENT_SHIFTS,
    EVENT_STOCK,
    EVENT_TYPES,
)
from ..validation import ValidationError
from henhouse.time_utils import format_money, to_utc_z, utcnow

COLOR_SALE = 0xFF6A2B
COLOR_CLOCK_IN = 0x00FF00
COLOR_CLOCK_OUT = 0xFF0000
COLOR_LOW_STOCK = 0xFFA500

PAYMENT_LABELS = {
    "cash": "Cash",
    "card": "Card",
    "banking": "Bank transfer",
}


class WebhookConfigError(ValueError):
    """Raised for invalid webhook config operations."""
    pass


# =============================================================================
# Embeds
# =============================================================================

def _embed(title: str, description: str, color: int, fields: list[dict] | None = None) -> dict:
    embed = {
        "title": title,
        "description": description,
        "color": color,
        "timestamp": to_utc_z(utcnow()),
    }
    if fields:
        embed["fields"] = fields
    return embed


def sale_embed(user_name: str, total: Decimal, payment_method: str) -> dict:
    return _embed(
        "New sale",
        f"Sale recorded by {user_name}",
        COLOR_SALE,
        [
            {"name": "Amount", "value": f"{format_money(total)}$", "inline": True},
            {"name": "Payment", "value": PAYMENT_LABELS.get(payment_method, payment_method), "inline": True},
        ],
    )


def clock_in_embed(user_name: str) -> dict:
    return _embed("Clock in", f"{user_name} started their shift", COLOR_CLOCK_IN)


def clock_out_embed(user_name: str, hours: Decimal) -> dict:
    return _embed(
        "Clock out",
        f"{user_name} ended their shift",
        COLOR_CLOCK_OUT,
        [{"name": "Duration", "value": f"{format_money(hours)}h", "inline": True}],
    )


def low_stock_embed(product_name: str, stock: int) -> dict:
    return _embed(
        "Low stock",
        f"{product_name} is running low",
        COLOR_LOW_STOCK,
        [{"name": "Remaining stock", "value": str(stock), "inline": True}],
    )


# =============================================================================
# Dispatch
# =============================================================================

def active_webhook_urls(category: str) -> list[str]:
    rows = (
        db.session.query(WebhookConfig.url)
        .filter(
            WebhookConfig.is_active.is_(True),
            WebhookConfig.event_type.in_([category, EVENT_ALL]),
        )
        .order_by(WebhookConfig.id.asc())
        .all()
    )
    return [row.url for row in rows]


def notify(category: str, embed: dict) -> int:
    """
    Send embed to every active webhook registered for category or "all".

    Returns the number of deliveries queued. Lookup failures are logged and
    swallowed; deliveries run in the background.
    """
    try:
        urls = active_webhook_urls(category)
    except SQLAlchemyError:
        current_app.logger.exception("Failed to load %s webhooks", category)
        return 0

    futures = notifier.dispatch(urls, {"embeds": [embed]})
    return len(futures)


def notify_sale(user_name: str, total: Decimal, payment_method: str) -> int:
    return notify(EVENT_SALES, sale_embed(user_name, total, payment_method))


def notify_clock_in(user_name: str) -> int:
    return notify(EVENT_SHIFTS, clock_in_embed(user_name))


def notify_clock_out(user_name: str, hours: Decimal) -> int:
    return notify(EVENT_SHIFTS, clock_out_embed(user_name, hours))


def notify_low_stock(product_name: str, stock: int) -> int:
    return notify(EVENT_STOCK, low_stock_embed(product_name, stock))


# =============================================================================
# Webhook configs (admin)
# =============================================================================

def _check_event_type(event_type) -> None:
    if not isinstance(event_type, str) or event_type not in EVENT_TYPES:
        raise ValidationError(f"event_type must be one of: {', '.join(EVENT_TYPES)}")


def _check_url(url) -> None:
    if not isinstance(url, str) or not url.startswith(("http://", "https://")):
        raise ValidationError("url must be an http(s) URL")


def _check_name(name) -> None:
    if name is not None and not isinstance(name, str):
        raise ValidationError("name must be a string")


def list_webhooks() -> list[WebhookConfig]:
    return db.session.query(WebhookConfig).order_by(WebhookConfig.id.asc()).all()


def create_webhook(*, url: str, event_type: str = EVENT_ALL, name: str | None = None, is_active: bool = True) -> WebhookConfig:
    _check_url(url)
    _check_event_type(event_type)
    _check_name(name)

    webhook = WebhookConfig(url=url, event_type=event_type, name=name, is_active=is_active)
    db.session.add(webhook)
    db.session.commit()
    return webhook


def update_webhook(webhook_id: int, patch: dict) -> WebhookConfig:
    webhook = db.session.get(WebhookConfig, webhook_id)
    if not webhook:
        raise WebhookConfigError("Webhook not found")

    if "url" in patch:
        _check_url(patch["url"])
    if "event_type" in patch:
        _check_event_type(patch["event_type"])
    if "name" in patch:
        _check_name(patch["name"])

    for key in ("url", "event_type", "name", "is_active"):
        if key in patch:
            setattr(webhook, key, patch[key])

    db.session.commit()
    return webhook


def delete_webhook(webhook_id: int) -> None:
    webhook = db.session.get(WebhookConfig, webhook_id)
    if not webhook:
        raise WebhookConfigError("Webhook not found")
    db.session.delete(webhook)
    db.session.commit()

