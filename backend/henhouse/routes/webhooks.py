# Overview: Flask API routes for webhook configuration; parses input and returns JSON responses.

"""
Webhook configuration routes (admin only).

Each config posts one category of events (sales, shifts, stock, or all)
to a chat webhook URL.
"""

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_role
from ..models.auth import ROLE_ADMIN
from ..models.notifications import EVENT_ALL
from ..services import notification_service
from ..services.notification_service import WebhookConfigError
from ..validation import ValidationError


webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/webhooks")

WEBHOOK_FIELDS = {"url", "event_type", "name", "is_active"}


def _check_fields(data) -> str | None:
    if not isinstance(data, dict):
        return "JSON object required"
    for key in data:
        if key not in WEBHOOK_FIELDS:
            return f"Field not allowed: {key}"
    if "is_active" in data and not isinstance(data["is_active"], bool):
        return "is_active must be a boolean"
    return None


@webhooks_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_webhooks_route():
    webhooks = notification_service.list_webhooks()
    return jsonify({"items": [w.to_dict() for w in webhooks], "count": len(webhooks)})


@webhooks_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_webhook_route():
    """
    Register a webhook.

    Expects JSON: {"url": "https://...", "event_type": "sales", "name": "..."}
    """
    data = request.get_json(silent=True) or {}
    error = _check_fields(data)
    if error:
        return jsonify({"error": error}), 400

    url = data.get("url")
    if isinstance(url, str):
        url = url.strip()

    try:
        webhook = notification_service.create_webhook(
            url=url,
            event_type=EVENT_ALL if data.get("event_type") is None else data["event_type"],
            name=data.get("name"),
            is_active=data.get("is_active", True),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(webhook.to_dict()), 201


@webhooks_bp.patch("/<int:webhook_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_webhook_route(webhook_id: int):
    data = request.get_json(silent=True) or {}
    error = _check_fields(data)
    if error:
        return jsonify({"error": error}), 400

    try:
        webhook = notification_service.update_webhook(webhook_id, data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except WebhookConfigError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(webhook.to_dict())


@webhooks_bp.delete("/<int:webhook_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_webhook_route(webhook_id: int):
    try:
        notification_service.delete_webhook(webhook_id)
    except WebhookConfigError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"ok": True})
