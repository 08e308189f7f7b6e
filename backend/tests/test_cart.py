"""
Cart tests.

Verifies:
- add/adjust/remove keep quantity between 1 and known stock
- refused mutations leave the cart unchanged
- snapshot price survives a price change; stock is refreshed
- signed tokens reject tampering and other users
"""

from decimal import Decimal

import pytest

from henhouse.services.cart import (
    Cart,
    CartLine,
    CartError,
    InsufficientStockError,
    ProductSnapshot,
    load_signed_cart,
    sign_cart,
)


def snapshot(product_id=1, price="5.00", stock=3, name=None):
    return ProductSnapshot(id=product_id, name=name or f"Product {product_id}", price=Decimal(price), stock=stock)


class TestAddLine:

    def test_new_product_starts_at_one(self):
        cart = Cart()
        line = cart.add_line(snapshot())
        assert line.quantity == 1
        assert len(cart) == 1

    def test_same_product_increments(self):
        cart = Cart()
        cart.add_line(snapshot())
        cart.add_line(snapshot())
        assert cart.quantity_of(1) == 2
        assert len(cart) == 1

    def test_out_of_stock_is_refused(self):
        cart = Cart()
        with pytest.raises(InsufficientStockError):
            cart.add_line(snapshot(stock=0))
        assert cart.is_empty

    def test_cannot_exceed_stock(self):
        cart = Cart()
        cart.add_line(snapshot(stock=1))
        with pytest.raises(InsufficientStockError) as exc:
            cart.add_line(snapshot(stock=1))
        assert exc.value.product_id == 1
        assert cart.quantity_of(1) == 1

    def test_keeps_price_captured_first(self):
        cart = Cart()
        cart.add_line(snapshot(price="5.00"))
        cart.add_line(snapshot(price="7.00"))
        assert cart.find(1).product.price == Decimal("5.00")
        assert cart.total() == Decimal("10.00")


class TestAdjustQuantity:

    def test_increment_within_stock(self):
        cart = Cart()
        cart.add_line(snapshot(stock=3))
        cart.adjust_quantity(1, 2)
        assert cart.quantity_of(1) == 3

    def test_increment_past_stock_is_refused(self):
        cart = Cart()
        cart.add_line(snapshot(stock=3))
        with pytest.raises(InsufficientStockError):
            cart.adjust_quantity(1, 3)
        assert cart.quantity_of(1) == 1

    def test_zero_or_below_removes_line(self):
        cart = Cart()
        cart.add_line(snapshot())
        assert cart.adjust_quantity(1, -1) is None
        assert cart.is_empty

    def test_unknown_product_is_noop(self):
        cart = Cart()
        cart.add_line(snapshot())
        assert cart.adjust_quantity(99, 1) is None
        assert cart.quantity_of(1) == 1


def test_remove_line_and_clear():
    cart = Cart()
    cart.add_line(snapshot(product_id=1))
    cart.add_line(snapshot(product_id=2))
    cart.remove_line(1)
    assert [line.product.id for line in cart.lines] == [2]
    cart.clear()
    assert cart.is_empty
    assert cart.total() == Decimal("0")


class TestRefreshStock:

    def test_missing_products_are_dropped(self):
        cart = Cart()
        cart.add_line(snapshot(product_id=1, stock=5))
        cart.add_line(snapshot(product_id=2, stock=5))

        assert cart.refresh_stock({1: 5}) == [2]
        assert [line.product.id for line in cart.lines] == [1]
        assert cart.quantity_of(1) == 1

    def test_lines_are_cut_down_to_new_stock(self):
        cart = Cart()
        cart.add_line(snapshot(stock=5))
        cart.adjust_quantity(1, 4)

        assert cart.refresh_stock({1: 2}) == [1]
        assert cart.quantity_of(1) == 2
        assert cart.find(1).product.stock == 2
        with pytest.raises(InsufficientStockError):
            cart.adjust_quantity(1, 1)

    def test_untouched_when_stock_suffices(self):
        cart = Cart()
        cart.add_line(snapshot(stock=3))
        assert cart.refresh_stock({1: 10}) == []
        assert cart.find(1).product.stock == 10
        assert cart.quantity_of(1) == 1


def test_stepping_down_over_stock_line_is_allowed():
    # A cart signed before the stock dropped, not yet reconciled
    cart = Cart([CartLine(product=snapshot(stock=2), quantity=5)])
    cart.adjust_quantity(1, -1)
    assert cart.quantity_of(1) == 4


def test_to_dict_formats_money():
    cart = Cart()
    cart.add_line(snapshot(product_id=1, price="5.00"))
    cart.add_line(snapshot(product_id=1, price="5.00"))
    cart.add_line(snapshot(product_id=2, price="10.00", stock=1))

    data = cart.to_dict()
    assert data["total"] == "20.00"
    assert [line["subtotal"] for line in data["lines"]] == ["10.00", "10.00"]


@pytest.mark.parametrize(
    "data",
    [
        {"lines": "nope"},
        {"lines": [{"product": {"id": 1, "name": "A", "price": "1.00", "stock": 1}, "quantity": 0}]},
        {"lines": [{"product": {"id": 1, "name": "A", "price": "x", "stock": 1}, "quantity": 1}]},
        {"lines": [
            {"product": {"id": 1, "name": "A", "price": "1.00", "stock": 5}, "quantity": 1},
            {"product": {"id": 1, "name": "A", "price": "1.00", "stock": 5}, "quantity": 1},
        ]},
    ],
)
def test_from_dict_rejects_malformed_carts(data):
    with pytest.raises(CartError):
        Cart.from_dict(data)


class TestSignedCart:

    def test_missing_token_is_empty_cart(self, app):
        assert load_signed_cart(None, 1).is_empty

    def test_token_restores_lines(self, app):
        cart = Cart()
        cart.add_line(snapshot(stock=3))
        cart.add_line(snapshot(stock=3))

        restored = load_signed_cart(sign_cart(cart, 7), 7)
        assert restored.quantity_of(1) == 2
        assert restored.total() == Decimal("10.00")

    def test_tampered_token_is_rejected(self, app):
        cheap = Cart()
        cheap.add_line(snapshot(price="0.01"))
        _, signature = sign_cart(cheap, 7).rsplit(".", 1)

        pricey = Cart()
        pricey.add_line(snapshot(price="500.00"))
        payload, _ = sign_cart(pricey, 7).rsplit(".", 1)

        with pytest.raises(CartError):
            load_signed_cart(f"{payload}.{signature}", 7)

    def test_token_of_another_user_is_rejected(self, app):
        token = sign_cart(Cart([]), 7)
        with pytest.raises(CartError):
            load_signed_cart(token, 8)
