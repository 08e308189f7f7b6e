from __future__ import annotations

from ..extensions import db
from henhouse.time_utils import to_utc_z, format_money

SALE_STATUSES = ("completed", "pending", "cancelled")
PAYMENT_METHODS = ("cash", "card", "banking")


class Sale(db.Model):
    """
    Completed sale header.

    total always equals the sum of the sale's item subtotals. Sales are not
    edited after creation.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    payment_method = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "total": format_money(self.total),
            "status": self.status,
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Sale line. unit_price is the price snapshot taken at sale time, not a
    live reference to the product.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(
        db.Integer,
        db.ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Nullable so sales history survives product deletion
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("sale_items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price": format_money(self.unit_price),
            "subtotal": format_money(self.subtotal),
            "created_at": to_utc_z(self.created_at),
        }
