# Overview: Service-layer operations for the admin dashboard; read-only rollups.

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from henhouse.extensions import db
from henhouse.models import Sale, SaleItem, Product, User
from henhouse.services.products_service import count_low_stock
from henhouse.time_utils import format_money, local_date, utcnow

UNKNOWN_PRODUCT = "Unknown"
TWO_PLACES = Decimal("0.01")


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _report_timezone() -> str:
    return current_app.config.get("REPORT_TIMEZONE", "UTC")


def daily_revenue(days: int = 7, today: date | None = None) -> list[dict]:
    """
    Completed-sale revenue per calendar day over the trailing `days` days,
    today included. Oldest first; days without sales are 0.00.
    """
    if days < 1:
        raise ReportError("days must be >= 1")

    tz_name = _report_timezone()
    today = today or local_date(utcnow(), tz_name)
    first_day = today - timedelta(days=days - 1)

    buckets: dict[date, Decimal] = {
        first_day + timedelta(days=i): Decimal("0") for i in range(days)
    }

    # One extra UTC day on each side covers any timezone offset
    window_start = datetime.combine(first_day - timedelta(days=1), time.min)
    window_end = datetime.combine(today + timedelta(days=2), time.min)
    sales = (
        db.session.query(Sale.created_at, Sale.total)
        .filter(
            Sale.status == "completed",
            Sale.created_at >= window_start,
            Sale.created_at < window_end,
        )
        .order_by(Sale.created_at.asc())
        .all()
    )

    for created_at, total in sales:
        day = local_date(created_at, tz_name)
        if day in buckets:
            buckets[day] += Decimal(total)

    return [
        {
            "date": day.isoformat(),
            "revenue": format_money(revenue.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)),
        }
        for day, revenue in sorted(buckets.items())
    ]


def top_products(limit: int = 5) -> list[dict]:
    """
    Best sellers by total quantity across every recorded sale item.

    Items are grouped by product name (deleted products fall under
    "Unknown"). Ties keep the order in which names are first met walking
    the items newest first.
    """
    items = (
        db.session.query(SaleItem.quantity, SaleItem.subtotal, Product.name)
        .outerjoin(Product, SaleItem.product_id == Product.id)
        .order_by(SaleItem.created_at.desc(), SaleItem.id.desc())
        .all()
    )

    stats: dict[str, dict] = {}
    for quantity, subtotal, name in items:
        name = name or UNKNOWN_PRODUCT
        entry = stats.setdefault(name, {"name": name, "quantity": 0, "revenue": Decimal("0")})
        entry["quantity"] += quantity
        entry["revenue"] += Decimal(subtotal)

    # sorted() is stable, so ties stay in first-seen order
    ranked = sorted(stats.values(), key=lambda s: s["quantity"], reverse=True)[:limit]
    return [
        {"name": s["name"], "quantity": s["quantity"], "revenue": format_money(s["revenue"])}
        for s in ranked
    ]


def summary_stats() -> dict:
    """All-time completed revenue and count, low-stock products, staff on duty."""
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)

    totals = db.session.query(Sale.total).filter(Sale.status == "completed").all()
    total_revenue = sum((Decimal(row.total) for row in totals), Decimal("0"))

    on_duty = db.session.query(User).filter(User.is_on_duty.is_(True)).count()

    return {
        "total_revenue": format_money(total_revenue),
        "total_sales": len(totals),
        "low_stock_products": count_low_stock(threshold),
        "active_employees": on_duty,
    }


def dashboard(days: int = 7, limit: int = 5) -> dict:
    return {
        "daily_revenue": daily_revenue(days),
        "top_products": top_products(limit),
        "stats": summary_stats(),
    }
