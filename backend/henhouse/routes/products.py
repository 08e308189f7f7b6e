# Overview: Flask API routes for product administration; parses input and returns JSON responses.

"""
Product management routes.

SECURITY: All routes require authentication and the admin role. The
register reads its catalog from /api/register/products instead.
"""
from flask import Blueprint, request, jsonify
from ..services import products_service
from ..services.products_service import ProductError
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)
from ..decorators import require_auth, require_role
from ..models.auth import ROLE_ADMIN

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price", "cost", "stock", "image_url", "is_active"},
    required_on_create={"name", "price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_products_route():
    """
    List every product, inactive ones included.

    Query params:
    - active_only: "true" to hide deactivated products
    """
    active_only = request.args.get("active_only", "false").lower() == "true"
    products = products_service.list_products(active_only=active_only)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_product_route(product_id: int):
    product = products_service.get_product(product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict())


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_product_route():
    """
    Create a new product.

    Expects JSON: {"name": "...", "price": "5.00", "stock": 10, ...}
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    created = products_service.create_product(patch=patch)
    return jsonify(created.to_dict()), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_product_route(product_id: int):
    """
    Update a product. stock is set absolutely (recount), not adjusted.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except ProductError:
        return jsonify({"error": "Product not found"}), 404

    return jsonify(updated.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id=product_id)
    except ProductError:
        return jsonify({"error": "Product not found"}), 404

    return jsonify({"ok": True}), 200
