# Overview: Flask extension instances for database, migrations and outbound webhooks.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .webhooks import WebhookNotifier

db = SQLAlchemy()
migrate = Migrate()
notifier = WebhookNotifier()
