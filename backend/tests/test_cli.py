from henhouse.models import Product, Sale, User, WebhookConfig


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "Created admin: admin" in result.output

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert "already exists" in result.output
    assert db_session.query(User).filter_by(role="admin").count() == 1


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--username", "asmith",
        "--full-name", "Anna Smith",
        "--password", "Password123!",
        "--hourly-rate", "16.50",
    ])
    assert result.exit_code == 0, result.output

    result = runner.invoke(args=["users", "list"])
    assert "asmith" in result.output
    assert "16.50" in result.output


def test_users_create_rejects_weak_password(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--username", "weak", "--full-name", "Weak", "--password", "short",
    ])
    assert result.exit_code != 0
    assert db_session.query(User).count() == 0


def test_webhooks_add(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "webhooks", "add", "--url", "https://chat.example/hooks/abc", "--event-type", "stock",
    ])
    assert result.exit_code == 0, result.output
    assert db_session.query(WebhookConfig).one().event_type == "stock"


def test_seed_demo(app, db_session):
    result = app.test_cli_runner().invoke(args=["seed", "demo", "--days-history", "2"])
    assert result.exit_code == 0, result.output
    assert db_session.query(Product).count() == 5
    assert db_session.query(Sale).count() > 0
