# backend/henhouse/services/products_service.py
"""
Products Service

Catalog reads for the register, admin CRUD, and the stock decrement used
by checkout. Stock is only ever changed here.
"""
from __future__ import annotations

from sqlalchemy import select, update

from ..extensions import db
from ..models import Product
from henhouse.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {"name", "description", "price", "cost", "stock", "image_url", "is_active"}


class ProductError(ValueError):
    """Raised for invalid product operations."""
    pass


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(active_only: bool = False) -> list[Product]:
    """Products ordered by name; the register only sees active ones."""
    query = db.session.query(Product)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def stock_levels(product_ids: list[int], active_only: bool = True) -> dict[int, int]:
    """Current stock by product id; missing (or inactive) products are absent."""
    if not product_ids:
        return {}
    stmt = select(Product.id, Product.stock).where(Product.id.in_(product_ids))
    if active_only:
        stmt = stmt.where(Product.is_active.is_(True))
    return {row.id: row.stock for row in db.session.execute(stmt)}


def create_product(*, patch: dict) -> Product:
    """Create product using a validated patch dict."""
    product = Product()
    apply_product_patch(product, patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Update product using a validated patch dict.

    stock is an absolute set (admin recount), not a delta.
    """
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductError("Product not found")

    apply_product_patch(product, patch)
    product.updated_at = utcnow()
    db.session.commit()
    return product


def delete_product(*, product_id: int) -> None:
    """
    Delete product. Past sale items keep their rows with product_id cleared.
    """
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductError("Product not found")

    db.session.delete(product)
    db.session.commit()


def decrement_stock(product_id: int, quantity: int) -> int | None:
    """
    Atomically take quantity units out of stock.

    Issues a single conditional UPDATE (stock >= quantity) so concurrent
    checkouts cannot drive stock below zero. Returns the remaining stock, or
    None when the product is missing, inactive or short. Does not commit.
    """
    result = db.session.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.is_active.is_(True),
            Product.stock >= quantity,
        )
        .values(stock=Product.stock - quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None

    return db.session.execute(
        select(Product.stock).where(Product.id == product_id)
    ).scalar_one()


def count_low_stock(threshold: int) -> int:
    return db.session.query(Product).filter(Product.stock <= threshold).count()
