"""
Pytest fixtures for Hen House backend tests.

Provides test database setup, staff accounts, a small catalog, captured
webhook deliveries, and test client helpers.
"""

import json
from decimal import Decimal

import httpx
import pytest
from henhouse import create_app
from henhouse.extensions import db, notifier
from henhouse.models import User, Product, WebhookConfig
from henhouse.services.auth_service import hash_password

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'WEBHOOKS_ENABLED': True,
        'LOW_STOCK_THRESHOLD': 10,
        'REPORT_TIMEZONE': 'UTC',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()
        notifier.shutdown()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(db_session, username, full_name, role, hourly_rate="15.00"):
    user = User(
        username=username,
        full_name=full_name,
        role=role,
        hourly_rate=Decimal(hourly_rate),
        is_on_duty=False,
        password_hash=hash_password(PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    """Create the admin account."""
    return _make_user(db_session, "admin", "Hen Admin", "admin", "25.00")


@pytest.fixture(scope='function')
def employee(db_session):
    """Create an employee account."""
    return _make_user(db_session, "jdoe", "John Doe", "employee")


@pytest.fixture(scope='function')
def product_a(db_session):
    """5.00, 3 in stock."""
    product = Product(name="Product A", price=Decimal("5.00"), cost=Decimal("2.00"), stock=3, is_active=True)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_b(db_session):
    """10.00, last unit."""
    product = Product(name="Product B", price=Decimal("10.00"), cost=Decimal("4.00"), stock=1, is_active=True)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def webhook_requests(app):
    """
    Capture outbound webhook POSTs instead of sending them.

    Deliveries run on the notifier's pool; call notifier.flush() before
    asserting on the list.
    """
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append({"url": str(request.url), "json": json.loads(request.content)})
        return httpx.Response(204)

    notifier.transport = httpx.MockTransport(handler)
    yield captured
    notifier.flush(timeout=5)
    notifier.transport = None


@pytest.fixture(scope='function')
def all_events_webhook(db_session):
    """Active webhook receiving every category."""
    webhook = WebhookConfig(name="ops", url="https://chat.example/hooks/all", event_type="all", is_active=True)
    db_session.add(webhook)
    db_session.commit()
    return webhook


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.username))


@pytest.fixture(scope='function')
def employee_headers(client, employee):
    return auth_headers(get_auth_token(client, employee.username))
