# Overview: Flask CLI command groups for bootstrap, accounts, webhooks and demo data.

# backend/henhouse/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and a first admin account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Staff accounts:
# - python -m flask users list
# - python -m flask users create --username alice --full-name "Alice" --role employee --hourly-rate 15
# - python -m flask users reset-password --username alice
#
# Chat webhooks:
# - python -m flask webhooks list
# - python -m flask webhooks add --url https://chat.example/hook --event-type sales
#
# Demo data:
# - python -m flask seed demo --days-history 7

import random
from datetime import timedelta
from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product, Sale, SaleItem, Shift
from .models.auth import ROLES, ROLE_ADMIN, ROLE_EMPLOYEE
from .models.notifications import EVENT_ALL, EVENT_TYPES
from .models.sales import PAYMENT_METHODS
from .services.auth_service import create_user, reset_password, PasswordValidationError
from .services.notification_service import create_webhook, list_webhooks
from .services.session_service import end_all_sessions
from .time_utils import utcnow, hours_between
from .validation import ConflictError, ValidationError

DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', show_default=True, help='Username of the first admin')
@click.option('--admin-password', default=DEFAULT_PASSWORD, show_default=True, help='Password of the first admin')
@with_appcontext
def init_system(admin_username, admin_password):
    """
    Initialize Hen House: schema and a first admin account.

    Running it again leaves existing tables and accounts untouched.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing Hen House...")

    db.create_all()
    click.echo("PASS Schema ready")

    admin = db.session.query(User).filter_by(role=ROLE_ADMIN).first()
    if admin:
        click.echo(f"WARN  Admin '{admin.username}' already exists, skipping...")
        return

    try:
        create_user(
            username=admin_username,
            password=admin_password,
            full_name="Administrator",
            role=ROLE_ADMIN,
        )
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        raise click.ClickException(f"Failed to create admin '{admin_username}': {e}")

    click.echo(f"PASS Created admin: {admin_username}")
    click.echo("\nSECURITY WARNING:")
    click.echo("   - Change the admin password immediately in production!")
    click.echo("   - Password requirements: 8+ chars, uppercase, lowercase, digit, special char")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """Staff account commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), default=ROLE_EMPLOYEE, show_default=True, help='Role')
@click.option('--hourly-rate', type=str, default='0', show_default=True, help='Hourly rate')
@click.option('--external-id', default=None, help='Identifier in an external system')
@with_appcontext
def create_user_cli(username, full_name, password, role, hourly_rate, external_id):
    """Create a staff account."""
    try:
        user = create_user(
            username=username,
            password=password,
            full_name=full_name,
            role=role,
            hourly_rate=Decimal(hourly_rate),
            external_id=external_id,
        )
    except ArithmeticError:
        raise click.BadParameter("hourly rate must be a number", param_hint="--hourly-rate")
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all staff accounts."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Role':<10} {'Rate':<10} {'On duty'}")
    click.echo("="*90)

    for user in users:
        on_duty = "Yes" if user.is_on_duty else "No"
        rate = user.to_dict()["hourly_rate"]
        click.echo(f"{user.id:<5} {user.username:<20} {user.full_name:<25} {user.role:<10} {rate:<10} {on_duty}")

    click.echo("="*90 + "\n")


@users_group.command('reset-password')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='New password')
@with_appcontext
def reset_password_cli(username, password):
    """Set a new password and revoke the account's sessions."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")

    try:
        reset_password(user.id, password)
    except PasswordValidationError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Password reset for {username}; open sessions revoked")


@users_group.command('logout-all')
@click.option('--username', required=True, help='Username')
@with_appcontext
def logout_all_cli(username):
    """Revoke every open session of an account."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")

    revoked = end_all_sessions(user.id)
    click.echo(f"PASS Revoked {revoked} session(s) for {username}")


@click.group('webhooks')
def webhooks_group():
    """Chat webhook commands."""


@webhooks_group.command('add')
@click.option('--url', required=True, help='Webhook URL')
@click.option('--event-type', type=click.Choice(list(EVENT_TYPES)), default=EVENT_ALL, show_default=True)
@click.option('--name', default=None, help='Label shown in the admin screen')
@with_appcontext
def add_webhook_cli(url, event_type, name):
    """Register a webhook for one event category."""
    try:
        webhook = create_webhook(url=url, event_type=event_type, name=name)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Added webhook {webhook.id} for '{event_type}' events")


@webhooks_group.command('list')
@with_appcontext
def list_webhooks_cli():
    """List webhooks (URLs are shortened, they embed a secret)."""
    webhooks = list_webhooks()
    if not webhooks:
        click.echo("No webhooks configured.")
        return

    for webhook in webhooks:
        active = "active" if webhook.is_active else "inactive"
        click.echo(f"{webhook.id:<5} {webhook.event_type:<8} {active:<9} {webhook.name or '-':<20} {webhook.url[:40]}...")


@click.group('seed')
def seed_group():
    """Demo data commands (development only)."""


DEMO_PRODUCTS = [
    ("Fried chicken bucket", "12.50", "5.00", 40),
    ("Chicken burger", "7.00", "2.80", 60),
    ("Egg sandwich", "4.50", "1.50", 25),
    ("Fries", "3.00", "0.60", 80),
    ("Lemonade", "2.50", "0.40", 8),
]

DEMO_STAFF = [
    ("jdoe", "John Doe", "15.00"),
    ("asmith", "Anna Smith", "16.50"),
]


@seed_group.command('demo')
@click.option('--days-history', type=int, default=7, show_default=True, help='How far back sales and shifts go')
@click.option('--password', default=DEFAULT_PASSWORD, show_default=True, help='Password for any seeded users')
@click.option('--random-seed', type=int, default=42, show_default=True)
@with_appcontext
def seed_demo(days_history, password, random_seed):
    """
    Seed a catalog, two employees and some sale and shift history.

    Existing products and users with the same names are reused.
    """
    rng = random.Random(random_seed)
    now = utcnow()

    products = []
    for name, price, cost, stock in DEMO_PRODUCTS:
        product = db.session.query(Product).filter_by(name=name).first()
        if not product:
            product = Product(name=name, price=Decimal(price), cost=Decimal(cost), stock=stock, is_active=True)
            db.session.add(product)
        products.append(product)
    db.session.commit()
    click.echo(f"PASS Catalog: {len(products)} products")

    staff = []
    for username, full_name, rate in DEMO_STAFF:
        user = db.session.query(User).filter_by(username=username).first()
        if not user:
            user = create_user(username=username, password=password, full_name=full_name, hourly_rate=Decimal(rate))
        staff.append(user)
    click.echo(f"PASS Staff: {', '.join(u.username for u in staff)}")

    sale_count = 0
    for days_ago in range(days_history, 0, -1):
        day = now - timedelta(days=days_ago)
        for user in staff:
            start = day.replace(hour=9, minute=0, second=0, microsecond=0)
            end = start + timedelta(hours=8, minutes=rng.choice([0, 15, 30]))
            db.session.add(Shift(
                user_id=user.id,
                start_time=start,
                end_time=end,
                total_hours=hours_between(start, end),
            ))

            for _ in range(rng.randint(1, 4)):
                created_at = start + timedelta(minutes=rng.randint(0, 460))
                sale = Sale(
                    user_id=user.id,
                    total=Decimal("0"),
                    status="completed",
                    payment_method=rng.choice(PAYMENT_METHODS),
                    created_at=created_at,
                )
                total = Decimal("0")
                for product in rng.sample(products, rng.randint(1, 3)):
                    quantity = rng.randint(1, 3)
                    subtotal = Decimal(product.price) * quantity
                    sale.items.append(SaleItem(
                        product_id=product.id,
                        quantity=quantity,
                        unit_price=product.price,
                        subtotal=subtotal,
                        created_at=created_at,
                    ))
                    total += subtotal
                sale.total = total
                db.session.add(sale)
                sale_count += 1

    db.session.commit()
    click.echo(f"PASS History: {sale_count} sales over {days_history} day(s)")
    click.echo(f"\nSeeded users log in with: {password}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(webhooks_group)
    app.cli.add_command(seed_group)
