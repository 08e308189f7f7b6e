"""
Checkout tests.

Verifies:
- sale, items and stock decrements land together
- a stock shortfall rolls back the whole sale
- low-stock and sale notifications go out after commit
- the register API drives the cart through its signed token
"""

from decimal import Decimal

import pytest

from henhouse.extensions import notifier
from henhouse.models import Product, Sale, SaleItem
from henhouse.services.cart import Cart, EmptyCartError, InsufficientStockError, ProductSnapshot
from henhouse.services.sales_service import SaleError, checkout, sale_total_matches_items
from conftest import auth_headers, get_auth_token


def cart_of(*products):
    cart = Cart()
    for product in products:
        cart.add_line(ProductSnapshot.from_product(product))
    return cart


def stock_by_name(db_session):
    return dict(db_session.query(Product.name, Product.stock).all())


class TestCheckoutService:

    def test_records_sale_items_and_stock(self, db_session, employee, product_a, product_b):
        cart = cart_of(product_a, product_a, product_b)

        sale = checkout(cart, "cash", employee)

        assert sale.total == Decimal("20.00")
        assert sale.status == "completed"
        assert sale.payment_method == "cash"
        assert sale.user_id == employee.id
        assert sale_total_matches_items(sale)

        items = {item.product.name: item for item in sale.items}
        assert items["Product A"].quantity == 2
        assert items["Product A"].unit_price == Decimal("5.00")
        assert items["Product A"].subtotal == Decimal("10.00")
        assert items["Product B"].quantity == 1
        assert items["Product B"].subtotal == Decimal("10.00")

        assert stock_by_name(db_session) == {"Product A": 1, "Product B": 0}
        assert cart.is_empty

    def test_sends_low_stock_then_sale_alerts(
        self, db_session, employee, product_a, product_b, all_events_webhook, webhook_requests
    ):
        checkout(cart_of(product_a, product_a, product_b), "banking", employee)
        notifier.flush(timeout=5)

        embeds = [request["json"]["embeds"][0] for request in webhook_requests]
        assert sorted(embed["title"] for embed in embeds) == ["Low stock", "Low stock", "New sale"]

        sale_embed = next(embed for embed in embeds if embed["title"] == "New sale")
        fields = {field["name"]: field["value"] for field in sale_embed["fields"]}
        assert fields == {"Amount": "20.00$", "Payment": "Bank transfer"}
        assert "John Doe" in sale_embed["description"]

        remaining = sorted(
            next(f["value"] for f in embed["fields"]) for embed in embeds if embed["title"] == "Low stock"
        )
        assert remaining == ["0", "1"]

    def test_no_low_stock_alert_above_threshold(self, db_session, employee, all_events_webhook, webhook_requests):
        product = Product(name="Fries", price=Decimal("3.00"), cost=Decimal("0.60"), stock=50, is_active=True)
        db_session.add(product)
        db_session.commit()

        checkout(cart_of(product), "card", employee)
        notifier.flush(timeout=5)

        assert [r["json"]["embeds"][0]["title"] for r in webhook_requests] == ["New sale"]

    def test_shortfall_rolls_back_everything(self, db_session, employee, product_a, product_b):
        cart = cart_of(product_a, product_b)

        # Someone else sold the last unit of B meanwhile
        product_b.stock = 0
        db_session.commit()

        with pytest.raises(InsufficientStockError) as exc:
            checkout(cart, "cash", employee)

        assert exc.value.product_id == product_b.id
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0
        assert stock_by_name(db_session) == {"Product A": 3, "Product B": 0}
        assert not cart.is_empty

    def test_deactivated_product_is_refused(self, db_session, employee, product_a):
        cart = cart_of(product_a)
        product_a.is_active = False
        db_session.commit()

        with pytest.raises(InsufficientStockError, match="no longer available"):
            checkout(cart, "cash", employee)
        assert db_session.query(Sale).count() == 0

    def test_empty_cart_writes_nothing(self, db_session, employee):
        with pytest.raises(EmptyCartError):
            checkout(Cart(), "cash", employee)
        assert db_session.query(Sale).count() == 0

    def test_unknown_payment_method(self, db_session, employee, product_a):
        with pytest.raises(SaleError) as exc:
            checkout(cart_of(product_a), "bitcoin", employee)
        assert exc.value.details["allowed"] == ["cash", "card", "banking"]
        assert stock_by_name(db_session) == {"Product A": 3}


class TestRegisterApi:

    def _add(self, client, headers, product_id, token=None):
        return client.post(
            "/api/register/cart/add",
            json={"product_id": product_id, "cart_token": token},
            headers=headers,
        )

    def test_full_sale_through_api(self, client, employee_headers, product_a, product_b, db_session):
        resp = self._add(client, employee_headers, product_a.id)
        assert resp.status_code == 200
        token = resp.json["cart_token"]

        token = self._add(client, employee_headers, product_a.id, token).json["cart_token"]
        resp = self._add(client, employee_headers, product_b.id, token)
        assert resp.json["cart"]["total"] == "20.00"
        token = resp.json["cart_token"]

        resp = client.post(
            "/api/register/checkout",
            json={"cart_token": token, "payment_method": "cash"},
            headers=employee_headers,
        )
        assert resp.status_code == 201
        assert resp.json["sale"]["total"] == "20.00"
        assert len(resp.json["sale"]["items"]) == 2
        assert resp.json["cart"] == {"lines": [], "total": "0.00"}
        stocks = {p["name"]: p["stock"] for p in resp.json["products"]}
        assert stocks == {"Product A": 1, "Product B": 0}

    def test_add_past_stock_returns_unchanged_cart(self, client, employee_headers, product_b):
        token = self._add(client, employee_headers, product_b.id).json["cart_token"]

        resp = self._add(client, employee_headers, product_b.id, token)
        assert resp.status_code == 409
        assert resp.json["cart"]["lines"][0]["quantity"] == 1

    def test_adjust_and_remove(self, client, employee_headers, product_a):
        token = self._add(client, employee_headers, product_a.id).json["cart_token"]

        resp = client.post(
            "/api/register/cart/adjust",
            json={"product_id": product_a.id, "delta": 2, "cart_token": token},
            headers=employee_headers,
        )
        assert resp.json["cart"]["lines"][0]["quantity"] == 3

        resp = client.post(
            "/api/register/cart/adjust",
            json={"product_id": product_a.id, "delta": 1, "cart_token": resp.json["cart_token"]},
            headers=employee_headers,
        )
        assert resp.status_code == 409

        resp = client.post(
            "/api/register/cart/remove",
            json={"product_id": product_a.id, "cart_token": resp.json["cart_token"]},
            headers=employee_headers,
        )
        assert resp.json["cart"]["lines"] == []

    def test_checkout_empty_cart(self, client, employee_headers):
        resp = client.post("/api/register/checkout", json={"payment_method": "cash"}, headers=employee_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Cart is empty"

    def test_cart_token_is_bound_to_user(self, client, employee_headers, admin_headers, product_a):
        token = self._add(client, employee_headers, product_a.id).json["cart_token"]
        resp = client.post("/api/register/cart", json={"cart_token": token}, headers=admin_headers)
        assert resp.status_code == 400

    def _cart_of_three(self, client, headers, product_id):
        token = None
        for _ in range(3):
            token = self._add(client, headers, product_id, token).json["cart_token"]
        return token

    def test_stock_drop_cuts_line_down_before_adjust(self, client, employee_headers, product_a, db_session):
        token = self._cart_of_three(client, employee_headers, product_a.id)
        product_a.stock = 2
        db_session.commit()

        resp = client.post(
            "/api/register/cart/adjust",
            json={"product_id": product_a.id, "delta": -1, "cart_token": token},
            headers=employee_headers,
        )
        assert resp.status_code == 200
        assert resp.json["cart"]["lines"][0]["quantity"] == 1
        assert resp.json["adjusted"] == [product_a.id]

        resp = client.post("/api/register/cart", json={"cart_token": resp.json["cart_token"]}, headers=employee_headers)
        assert resp.json["cart"]["lines"][0]["quantity"] == 1
        assert "adjusted" not in resp.json

    def test_stock_drop_never_returns_over_stock_cart(self, client, employee_headers, product_a, product_b, db_session):
        token = self._cart_of_three(client, employee_headers, product_a.id)
        product_a.stock = 1
        db_session.commit()

        resp = self._add(client, employee_headers, product_b.id, token)
        assert resp.status_code == 200
        quantities = {line["product"]["id"]: line["quantity"] for line in resp.json["cart"]["lines"]}
        assert quantities == {product_a.id: 1, product_b.id: 1}
        assert resp.json["cart"]["total"] == "15.00"

    def test_stock_drop_at_checkout_is_refused(self, client, employee_headers, product_a, db_session):
        token = self._cart_of_three(client, employee_headers, product_a.id)
        product_a.stock = 2
        db_session.commit()

        resp = client.post(
            "/api/register/checkout",
            json={"cart_token": token, "payment_method": "cash"},
            headers=employee_headers,
        )
        assert resp.status_code == 409
        assert resp.json["product_id"] == product_a.id
        assert db_session.query(Sale).count() == 0
        assert stock_by_name(db_session) == {"Product A": 2}

    def test_inactive_product_cannot_be_added(self, client, employee_headers, product_a, db_session):
        product_a.is_active = False
        db_session.commit()
        assert self._add(client, employee_headers, product_a.id).status_code == 404

    def test_employees_only_see_their_own_sales(self, client, admin, employee, product_a, db_session):
        sale = checkout(cart_of(product_a), "cash", admin)
        sale_id = sale.id

        employee_token = get_auth_token(client, employee.username)
        resp = client.get(f"/api/register/sales/{sale_id}", headers=auth_headers(employee_token))
        assert resp.status_code == 404

        admin_token = get_auth_token(client, admin.username)
        resp = client.get(f"/api/register/sales/{sale_id}", headers=auth_headers(admin_token))
        assert resp.status_code == 200
        assert resp.json["sale"]["items"][0]["product_name"] == "Product A"
