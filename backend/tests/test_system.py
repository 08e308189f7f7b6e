from henhouse import __version__


def test_health(client, db_session, admin):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
    assert resp.json["checks"]["database"]["details"]["users"] == 1
    assert resp.json["checks"]["notifications"]["details"]["active_webhooks"] == 0


def test_health_degraded_when_webhooks_disabled(client, db_session, monkeypatch):
    from henhouse.extensions import notifier

    monkeypatch.setattr(notifier, "enabled", False)
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "degraded"


def test_version(client):
    resp = client.get("/version")
    assert resp.json["api_version"] == __version__
    assert resp.json["server_time"].endswith("Z")
