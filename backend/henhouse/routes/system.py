# backend/henhouse/routes/system.py
"""
System health and version endpoints.

Public, no authentication. Used by deployment probes.
"""

import sys
import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db, notifier
from ..models import User, Product, WebhookConfig
from henhouse import __version__
from henhouse.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a few cheap counts.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        product_count = db.session.query(Product).count()
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "products": product_count,
            }
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_notifications_health() -> dict:
    """
    Webhook delivery is best effort, so problems here only degrade.
    """
    try:
        active = db.session.query(WebhookConfig).filter_by(is_active=True).count()
    except SQLAlchemyError:
        current_app.logger.exception("Webhook config check failed")
        return {"status": "degraded", "warning": "Webhook configs unreadable"}

    if not notifier.enabled:
        return {"status": "degraded", "warning": "Webhooks disabled", "details": {"active_webhooks": active}}

    return {"status": "healthy", "details": {"active_webhooks": active}}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    notifications_health = check_notifications_health()

    all_checks = [database_health, notifications_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200  # Degraded is still operational
    else:
        overall_status, http_status = "healthy", 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "notifications": notifications_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging. Never exposes secrets.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": __version__,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
