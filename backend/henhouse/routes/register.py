# Overview: Flask API routes for the cash register; parses input and returns JSON responses.

"""
Cash Register Routes

The cart travels with the client as a signed token (cart_token). Every
cart mutation sends the token back, the server reconciles the cart with
live stock, applies the mutation and returns the new cart and token.

Lines holding more than the live stock are cut down to it (sold-out lines
are dropped) and their product ids come back under "adjusted".

Cart responses:
    {"cart": {"lines": [...], "total": "20.00"}, "cart_token": "...", "adjusted": [...]}
Refused mutations answer 409 with the unchanged cart.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import products_service, sales_service
from ..services.cart import (
    Cart,
    CartError,
    EmptyCartError,
    InsufficientStockError,
    ProductSnapshot,
    load_signed_cart,
    sign_cart,
)
from ..services.sales_service import SaleError


register_bp = Blueprint("register", __name__, url_prefix="/api/register")


def _cart_response(cart: Cart, status: int = 200, **extra):
    body = {"cart": cart.to_dict(), "cart_token": sign_cart(cart, g.current_user.id)}
    adjusted = g.get("cart_adjusted")
    if adjusted:
        body["adjusted"] = adjusted
    body.update(extra)
    return jsonify(body), status


def _load_cart(data: dict, reconcile: bool = True) -> Cart:
    """
    Rebuild the cart from its token.

    With reconcile, lines are cut down to live stock first and the affected
    product ids are reported back as "adjusted".
    """
    cart = load_signed_cart(data.get("cart_token"), g.current_user.id)
    if reconcile:
        product_ids = [line.product.id for line in cart.lines]
        g.cart_adjusted = cart.refresh_stock(products_service.stock_levels(product_ids))
    return cart


def _int_field(data: dict, key: str) -> int | None:
    value = data.get(key)
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@register_bp.get("/products")
@require_auth
def list_products_route():
    """Active products, by name, for the register grid."""
    products = products_service.list_products(active_only=True)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@register_bp.post("/cart")
@require_auth
def view_cart_route():
    """Reconcile a cart with live stock without changing it."""
    data = request.get_json(silent=True) or {}
    try:
        cart = _load_cart(data)
    except CartError as e:
        return jsonify({"error": str(e)}), 400
    return _cart_response(cart)


@register_bp.post("/cart/add")
@require_auth
def add_to_cart_route():
    """Add one unit of product_id."""
    data = request.get_json(silent=True) or {}
    product_id = _int_field(data, "product_id")
    if product_id is None:
        return jsonify({"error": "product_id required"}), 400

    try:
        cart = _load_cart(data)
    except CartError as e:
        return jsonify({"error": str(e)}), 400

    product = products_service.get_product(product_id)
    if not product or not product.is_active:
        return jsonify({"error": "Product not found"}), 404

    try:
        cart.add_line(ProductSnapshot.from_product(product))
    except InsufficientStockError as e:
        return _cart_response(cart, 409, error=str(e))

    return _cart_response(cart)


@register_bp.post("/cart/adjust")
@require_auth
def adjust_cart_route():
    """Change a line's quantity by delta (<= 0 result removes the line)."""
    data = request.get_json(silent=True) or {}
    product_id = _int_field(data, "product_id")
    delta = _int_field(data, "delta")
    if product_id is None or delta is None:
        return jsonify({"error": "product_id and delta required"}), 400

    try:
        cart = _load_cart(data)
        cart.adjust_quantity(product_id, delta)
    except InsufficientStockError as e:
        return _cart_response(cart, 409, error=str(e))
    except CartError as e:
        return jsonify({"error": str(e)}), 400

    return _cart_response(cart)


@register_bp.post("/cart/remove")
@require_auth
def remove_from_cart_route():
    data = request.get_json(silent=True) or {}
    product_id = _int_field(data, "product_id")
    if product_id is None:
        return jsonify({"error": "product_id required"}), 400

    try:
        cart = _load_cart(data)
    except CartError as e:
        return jsonify({"error": str(e)}), 400

    cart.remove_line(product_id)
    return _cart_response(cart)


@register_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    Complete the sale.

    Expects JSON: {"cart_token": "...", "payment_method": "cash|card|banking"}
    Returns the sale with its items, an empty cart and the refreshed
    product list.
    """
    data = request.get_json(silent=True) or {}
    payment_method = data.get("payment_method")
    if not payment_method:
        return jsonify({"error": "payment_method required"}), 400

    try:
        # Not reconciled: a shortfall answers 409, the sale is never cut down
        cart = _load_cart(data, reconcile=False)
        sale = sales_service.checkout(cart, payment_method, g.current_user)
    except EmptyCartError as e:
        return jsonify({"error": str(e)}), 400
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "product_id": e.product_id}), 409
    except CartError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to complete sale")
        return jsonify({"error": "Internal server error"}), 500

    products = products_service.list_products(active_only=True)
    return _cart_response(
        cart,
        201,
        sale=sale.to_dict(include_items=True),
        products=[p.to_dict() for p in products],
        message=f"Sale completed: {sale.to_dict()['total']}$",
    )


@register_bp.get("/sales/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Sale with items. Employees only see their own sales."""
    sale = sales_service.get_sale(sale_id)
    if not sale or (not g.current_user.is_admin and sale.user_id != g.current_user.id):
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_dict(include_items=True)}), 200
