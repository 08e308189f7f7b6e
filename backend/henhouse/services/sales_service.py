"""
Sales Service - checkout of a register cart

WHY: A sale, its items and the matching stock decrements must land
together. All three are written in one database transaction; a stock
shortfall or store error rolls back everything, so there is never a sale
without its items or an oversold product.

Notifications (low stock, then the sale summary) are sent only after the
commit and never affect the outcome of the checkout.
"""

from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Sale, SaleItem, Product, User
from ..models.sales import PAYMENT_METHODS
from . import notification_service
from .cart import Cart, EmptyCartError, InsufficientStockError
from .products_service import decrement_stock
from henhouse.time_utils import utcnow


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _shortfall_error(product_id: int, name: str, quantity: int) -> InsufficientStockError:
    product = db.session.get(Product, product_id, populate_existing=True)
    if product is None or not product.is_active:
        return InsufficientStockError(f"{name} is no longer available", product_id=product_id)
    return InsufficientStockError(
        f"Insufficient stock for {name} ({product.stock} left, {quantity} requested)",
        product_id=product_id,
    )


def checkout(cart: Cart, payment_method: str, user: User) -> Sale:
    """
    Record the cart as a completed sale paid with payment_method.

    Steps, in one transaction:
    1. sale header (total = cart total, status "completed")
    2. one item per cart line at the cart's snapshot price
    3. conditional stock decrement per line

    After commit: low-stock alert for every product left at or below
    LOW_STOCK_THRESHOLD, then one sale alert. The cart is cleared.

    Raises:
        EmptyCartError: cart has no lines (nothing is written)
        SaleError: unknown payment method or store failure
        InsufficientStockError: a product is short or gone (rolled back)
    """
    if cart.is_empty:
        raise EmptyCartError()

    if payment_method not in PAYMENT_METHODS:
        raise SaleError(
            "Invalid payment method",
            details={"allowed": list(PAYMENT_METHODS)},
        )

    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    total = cart.total()
    low_stock: list[tuple[str, int]] = []

    try:
        sale = Sale(
            user_id=user.id,
            total=total,
            status="completed",
            payment_method=payment_method,
            created_at=utcnow(),
        )
        db.session.add(sale)
        db.session.flush()

        for line in cart.lines:
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=line.product.id,
                quantity=line.quantity,
                unit_price=line.product.price,
                subtotal=line.subtotal,
            ))
        db.session.flush()

        for line in cart.lines:
            remaining = decrement_stock(line.product.id, line.quantity)
            if remaining is None:
                raise _shortfall_error(line.product.id, line.product.name, line.quantity)
            if remaining <= threshold:
                low_stock.append((line.product.name, remaining))

        db.session.commit()
    except InsufficientStockError:
        db.session.rollback()
        raise
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to record sale for user %s", user.id)
        raise SaleError("Failed to record sale")

    current_app.logger.info(
        "Sale %s recorded by %s: %s via %s (%d line(s))",
        sale.id, user.username, total, payment_method, len(cart),
    )

    for product_name, remaining in low_stock:
        notification_service.notify_low_stock(product_name, remaining)
    notification_service.notify_sale(user.full_name, total, payment_method)

    cart.clear()
    return sale


def get_sale(sale_id: int) -> Sale | None:
    return db.session.get(Sale, sale_id)


def sale_total_matches_items(sale: Sale) -> bool:
    """Integrity check: header total equals the sum of item subtotals."""
    return Decimal(sale.total) == sum((Decimal(i.subtotal) for i in sale.items), Decimal("0"))
