from .auth import User, SessionToken
from .catalog import Product
from .sales import Sale, SaleItem
from .timekeeping import Shift
from .notifications import WebhookConfig

__all__ = [
    'User', 'SessionToken',
    'Product',
    'Sale', 'SaleItem',
    'Shift',
    'WebhookConfig',
]
