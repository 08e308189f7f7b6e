"""
Notification tests.

Verifies:
- webhooks receive only their category (or everything for "all")
- inactive webhooks and a disabled notifier send nothing
- delivery failures are logged and never raised
"""

from decimal import Decimal

import httpx
import pytest

from henhouse.extensions import notifier
from henhouse.models import WebhookConfig
from henhouse.services import notification_service
from henhouse.webhooks import _redact


@pytest.fixture
def category_webhooks(db_session):
    db_session.add_all([
        WebhookConfig(name="sales", url="https://chat.example/hooks/sales", event_type="sales", is_active=True),
        WebhookConfig(name="stock", url="https://chat.example/hooks/stock", event_type="stock", is_active=True),
        WebhookConfig(name="all", url="https://chat.example/hooks/all", event_type="all", is_active=True),
        WebhookConfig(name="off", url="https://chat.example/hooks/off", event_type="sales", is_active=False),
    ])
    db_session.commit()


def test_routing_by_category(category_webhooks):
    assert notification_service.active_webhook_urls("sales") == [
        "https://chat.example/hooks/sales",
        "https://chat.example/hooks/all",
    ]
    assert notification_service.active_webhook_urls("shifts") == ["https://chat.example/hooks/all"]


def test_low_stock_goes_to_stock_and_all(category_webhooks, webhook_requests):
    queued = notification_service.notify_low_stock("Lemonade", 4)
    notifier.flush(timeout=5)

    assert queued == 2
    assert sorted(r["url"] for r in webhook_requests) == [
        "https://chat.example/hooks/all",
        "https://chat.example/hooks/stock",
    ]
    embed = webhook_requests[0]["json"]["embeds"][0]
    assert embed["color"] == 0xFFA500
    assert embed["fields"] == [{"name": "Remaining stock", "value": "4", "inline": True}]


def test_sale_embed():
    embed = notification_service.sale_embed("John Doe", Decimal("20"), "card")
    assert embed["title"] == "New sale"
    assert embed["color"] == 0xFF6A2B
    assert embed["timestamp"].endswith("Z")
    assert {f["name"]: f["value"] for f in embed["fields"]} == {"Amount": "20.00$", "Payment": "Card"}


def test_no_webhooks_sends_nothing(db_session, webhook_requests):
    assert notification_service.notify_sale("John Doe", Decimal("5"), "cash") == 0
    notifier.flush(timeout=5)
    assert webhook_requests == []


def test_disabled_notifier_drops_everything(category_webhooks, webhook_requests, monkeypatch):
    monkeypatch.setattr(notifier, "enabled", False)
    assert notification_service.notify_sale("John Doe", Decimal("5"), "cash") == 0
    assert webhook_requests == []


def test_failed_delivery_is_logged_not_raised(category_webhooks, monkeypatch, caplog):
    def handler(request):
        return httpx.Response(500)

    monkeypatch.setattr(notifier, "transport", httpx.MockTransport(handler))

    futures = notifier.dispatch(["https://chat.example/hooks/secret-token"], {"embeds": []})
    notifier.flush(timeout=5)

    assert [f.result() for f in futures] == [False]
    assert "secret-token" not in caplog.text


def test_redact_keeps_only_host():
    assert _redact("https://chat.example/api/webhooks/123/abcdef") == "chat.example"


class TestWebhookConfigs:

    def test_create_rejects_bad_input(self, db_session):
        with pytest.raises(notification_service.ValidationError):
            notification_service.create_webhook(url="chat.example/hook")
        with pytest.raises(notification_service.ValidationError):
            notification_service.create_webhook(url="https://chat.example/hook", event_type="birthdays")

    def test_update_and_delete(self, db_session):
        webhook = notification_service.create_webhook(url="https://chat.example/hook", name="ops")
        assert webhook.event_type == "all"

        webhook = notification_service.update_webhook(webhook.id, {"event_type": "shifts", "is_active": False})
        assert webhook.event_type == "shifts"
        assert notification_service.active_webhook_urls("shifts") == []

        webhook_id = webhook.id
        notification_service.delete_webhook(webhook_id)
        with pytest.raises(notification_service.WebhookConfigError):
            notification_service.delete_webhook(webhook_id)
