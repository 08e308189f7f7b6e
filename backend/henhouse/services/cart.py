# Overview: In-memory cash-register cart and its signed client-side form.

"""
Cart

The cart is transient: it lives with the client between requests as a
signed token and is discarded on checkout. Each line keeps a snapshot of
the product taken when it was added. The snapshot price is what the
customer pays; the snapshot stock is refreshed from the store before every
mutation.

INVARIANTS:
- a line's quantity is always between 1 and its snapshot stock
- a refused mutation leaves the cart unchanged
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation

from flask import current_app
from itsdangerous import BadSignature, URLSafeSerializer

from henhouse.time_utils import format_money

CART_SALT = "henhouse-cart"


class CartError(ValueError):
    """Raised for invalid cart operations."""
    pass


class InsufficientStockError(CartError):
    """Raised when a quantity would exceed the known stock."""

    def __init__(self, message: str = "Insufficient stock", product_id: int | None = None):
        super().__init__(message)
        self.product_id = product_id


class EmptyCartError(CartError):
    """Raised when checking out a cart with no lines."""

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    price: Decimal
    stock: int

    @classmethod
    def from_product(cls, product) -> "ProductSnapshot":
        return cls(
            id=product.id,
            name=product.name,
            price=Decimal(product.price),
            stock=int(product.stock),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "ProductSnapshot":
        try:
            return cls(
                id=int(data["id"]),
                name=str(data["name"]),
                price=Decimal(str(data["price"])),
                stock=int(data["stock"]),
            )
        except (KeyError, TypeError, ValueError, InvalidOperation):
            raise CartError("Invalid cart product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": format_money(self.price),
            "stock": self.stock,
        }


@dataclass
class CartLine:
    product: ProductSnapshot
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.product.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "subtotal": format_money(self.subtotal),
        }


class Cart:
    """Ordered product/quantity lines for one checkout."""

    def __init__(self, lines: list[CartLine] | None = None):
        self._lines: list[CartLine] = list(lines or [])

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def find(self, product_id: int) -> CartLine | None:
        for line in self._lines:
            if line.product.id == product_id:
                return line
        return None

    def quantity_of(self, product_id: int) -> int:
        line = self.find(product_id)
        return line.quantity if line else 0

    def add_line(self, product: ProductSnapshot) -> CartLine:
        """
        Add one unit of product.

        Raises InsufficientStockError when the product is out of stock or
        one more unit would exceed its stock.
        """
        if product.stock <= 0:
            raise InsufficientStockError(product_id=product.id)

        line = self.find(product.id)
        if line is None:
            line = CartLine(product=product, quantity=1)
            self._lines.append(line)
            return line

        if line.quantity + 1 > product.stock:
            raise InsufficientStockError(product_id=product.id)

        # Keep the price captured when the line was created
        line.product = replace(line.product, stock=product.stock)
        line.quantity += 1
        return line

    def adjust_quantity(self, product_id: int, delta: int) -> CartLine | None:
        """
        Change a line's quantity by delta.

        No-op for products not in the cart. A resulting quantity <= 0
        removes the line. Returns the line, or None if it is gone.
        """
        line = self.find(product_id)
        if line is None:
            return None

        new_quantity = line.quantity + delta
        if new_quantity <= 0:
            self.remove_line(product_id)
            return None

        # Stepping down is always allowed
        if delta > 0 and new_quantity > line.product.stock:
            raise InsufficientStockError(product_id=product_id)

        line.quantity = new_quantity
        return line

    def remove_line(self, product_id: int) -> None:
        self._lines = [line for line in self._lines if line.product.id != product_id]

    def refresh_stock(self, stock_by_id: dict[int, int]) -> list[int]:
        """
        Reconcile snapshot stock with the store.

        Products missing from stock_by_id (deleted or deactivated) are treated
        as out of stock. Lines holding more than the new stock are cut down to
        it, and sold-out lines are dropped. Prices are left untouched.

        Returns the ids of products whose line was cut down or dropped.
        """
        adjusted = []
        kept = []
        for line in self._lines:
            stock = max(int(stock_by_id.get(line.product.id, 0)), 0)
            line.product = replace(line.product, stock=stock)
            if line.quantity > stock:
                adjusted.append(line.product.id)
                line.quantity = stock
            if line.quantity > 0:
                kept.append(line)
        self._lines = kept
        return adjusted

    def total(self) -> Decimal:
        return sum((line.subtotal for line in self._lines), Decimal("0"))

    def clear(self) -> None:
        self._lines = []

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self._lines],
            "total": format_money(self.total()),
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "Cart":
        if not data:
            return cls()
        if not isinstance(data, dict) or not isinstance(data.get("lines", []), list):
            raise CartError("Invalid cart")

        lines = []
        seen = set()
        for raw in data.get("lines", []):
            if not isinstance(raw, dict):
                raise CartError("Invalid cart line")
            product = ProductSnapshot.from_dict(raw.get("product") or {})
            try:
                quantity = int(raw.get("quantity"))
            except (TypeError, ValueError):
                raise CartError("Invalid cart quantity")
            if quantity <= 0 or product.id in seen:
                raise CartError("Invalid cart line")
            seen.add(product.id)
            lines.append(CartLine(product=product, quantity=quantity))
        return cls(lines)


# =============================================================================
# Signed client-side form
# =============================================================================

def _serializer() -> URLSafeSerializer:
    return URLSafeSerializer(current_app.config["SECRET_KEY"], salt=CART_SALT)


def sign_cart(cart: Cart, user_id: int) -> str:
    """Token the client sends back with the next cart request."""
    return _serializer().dumps({"user_id": user_id, "cart": cart.to_dict()})


def load_signed_cart(token: str | None, user_id: int) -> Cart:
    """
    Rebuild a cart from its token.

    A missing token is an empty cart. Tampered tokens and tokens issued to
    another user raise CartError.
    """
    if not token:
        return Cart()
    try:
        payload = _serializer().loads(token)
    except BadSignature:
        raise CartError("Invalid cart")
    if not isinstance(payload, dict) or payload.get("user_id") != user_id:
        raise CartError("Invalid cart")
    return Cart.from_dict(payload.get("cart"))
