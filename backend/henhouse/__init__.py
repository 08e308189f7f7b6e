# backend/henhouse/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate, notifier

__version__ = "1.0.0"


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    notifier.init_app(app)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.register import register_bp
    from .routes.timekeeping import timekeeping_bp
    from .routes.products import products_bp  # Admin: catalog
    from .routes.staff import staff_bp  # Admin: accounts and hours
    from .routes.reports import reports_bp  # Admin: dashboard
    from .routes.webhooks import webhooks_bp  # Admin: chat notifications

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(register_bp)
    app.register_blueprint(timekeeping_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(staff_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(webhooks_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS") or [])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
