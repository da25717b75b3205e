"""
Cart & checkout over HTTP: one engine per cashier session, stock enforced
at commit, and the last-unit race between two cashiers.
"""

from datetime import timedelta

import pytest

from counterpos.extensions import carts, db
from counterpos.models import Item, Order, SessionToken
from counterpos.services import session_service
from counterpos.time_utils import utcnow


def _add(client, headers, item_id):
    return client.post("/api/checkout/cart/items", json={"item_id": item_id}, headers=headers)


def _commit(client, headers, tendered, method="CASH"):
    return client.post(
        "/api/checkout/commit",
        json={"payment_method": method, "amount_tendered": tendered},
        headers=headers,
    )


# =============================================================================
# CART
# =============================================================================


class TestCart:
    def test_empty_cart(self, client, cashier_headers):
        resp = client.get("/api/checkout/cart", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["cart"] == {
            "state": "EMPTY",
            "items": [],
            "item_count": 0,
            "total": "0.00",
            "last_error": None,
        }

    def test_add_and_adjust(self, client, items, cashier_headers):
        water = items["Water"]
        _add(client, cashier_headers, water.id)
        resp = client.patch(f"/api/checkout/cart/items/{water.id}", json={"delta": 1}, headers=cashier_headers)

        cart = resp.json["cart"]
        assert cart["state"] == "BUILDING"
        assert cart["items"][0]["quantity"] == 2
        assert cart["total"] == "40.00"

    def test_add_out_of_stock(self, client, items, cashier_headers):
        resp = _add(client, cashier_headers, items["Gum"].id)
        assert resp.status_code == 400
        assert resp.json["code"] == "INSUFFICIENT_STOCK"

    def test_add_beyond_stock_keeps_quantity(self, client, items, cashier_headers):
        bread = items["Bread"]
        for _ in range(3):
            _add(client, cashier_headers, bread.id)

        resp = _add(client, cashier_headers, bread.id)
        assert resp.status_code == 400
        resp = client.patch(f"/api/checkout/cart/items/{bread.id}", json={"delta": 1}, headers=cashier_headers)
        assert resp.status_code == 400

        cart = client.get("/api/checkout/cart", headers=cashier_headers).json["cart"]
        assert cart["items"][0]["quantity"] == 3

    def test_add_unknown_item(self, client, items, cashier_headers):
        resp = _add(client, cashier_headers, 9999)
        assert resp.status_code == 404

    def test_add_requires_integer_id(self, client, items, cashier_headers):
        resp = client.post("/api/checkout/cart/items", json={"item_id": "1"}, headers=cashier_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize("delta", [0, 5])
    def test_bad_delta(self, client, items, cashier_headers, delta):
        _add(client, cashier_headers, items["Water"].id)
        resp = client.patch(f"/api/checkout/cart/items/{items['Water'].id}", json={"delta": delta}, headers=cashier_headers)
        assert resp.status_code == 400
        assert client.get("/api/checkout/cart", headers=cashier_headers).json["cart"]["items"][0]["quantity"] == 1

    def test_remove_and_clear(self, client, items, cashier_headers):
        _add(client, cashier_headers, items["Water"].id)
        _add(client, cashier_headers, items["Bread"].id)

        resp = client.delete(f"/api/checkout/cart/items/{items['Water'].id}", headers=cashier_headers)
        assert [i["name"] for i in resp.json["cart"]["items"]] == ["Bread"]

        resp = client.delete("/api/checkout/cart", headers=cashier_headers)
        assert resp.json["cart"]["state"] == "EMPTY"

    def test_carts_are_per_session(self, client, items, cashier_headers, second_cashier_headers):
        _add(client, cashier_headers, items["Water"].id)
        resp = client.get("/api/checkout/cart", headers=second_cashier_headers)
        assert resp.json["cart"]["items"] == []
        assert len(carts) == 2


# =============================================================================
# CHECKOUT
# =============================================================================


class TestCheckoutFlow:
    def test_begin_on_empty_cart(self, client, cashier_headers):
        resp = client.post("/api/checkout/begin", headers=cashier_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "EMPTY_CART"

    def test_quote(self, client, items, cashier_headers):
        _add(client, cashier_headers, items["Bread"].id)
        resp = client.post("/api/checkout/quote", json={"amount_tendered": "30"}, headers=cashier_headers)
        assert resp.json["quote"]["change"] == "4.50"

        resp = client.post("/api/checkout/quote", json={"amount_tendered": "abc"}, headers=cashier_headers)
        assert resp.status_code == 400

    def test_short_payment_changes_nothing(self, client, items, cashier_headers):
        _add(client, cashier_headers, items["Bread"].id)
        client.post("/api/checkout/begin", headers=cashier_headers)

        resp = _commit(client, cashier_headers, "25.49")

        assert resp.status_code == 400
        assert resp.json["code"] == "INSUFFICIENT_PAYMENT"
        assert db.session.query(Order).count() == 0
        db.session.expire_all()
        assert db.session.get(Item, items["Bread"].id).stock == 3

    def test_commit_success(self, client, items, cashier_headers):
        water, bread = items["Water"], items["Bread"]
        _add(client, cashier_headers, water.id)
        _add(client, cashier_headers, water.id)
        _add(client, cashier_headers, bread.id)
        begin = client.post("/api/checkout/begin", headers=cashier_headers)
        assert begin.json["cart"]["state"] == "READY_FOR_PAYMENT"

        resp = _commit(client, cashier_headers, "70.00", method="GCASH")

        assert resp.status_code == 201
        assert resp.json["order"]["total"] == "65.50"
        assert resp.json["order"]["change"] == "4.50"
        assert resp.json["cart"]["state"] == "COMMITTED"
        assert resp.json["cart"]["items"] == []

        items_after = {i["name"]: i["stock"] for i in client.get("/api/items", headers=cashier_headers).json["items"]}
        assert items_after["Water"] == 48
        assert items_after["Bread"] == 2

    def test_edit_after_cancel(self, client, items, cashier_headers):
        _add(client, cashier_headers, items["Water"].id)
        client.post("/api/checkout/begin", headers=cashier_headers)

        resp = _add(client, cashier_headers, items["Bread"].id)
        assert resp.status_code == 409
        assert resp.json["code"] == "CHECKOUT_STATE"

        client.post("/api/checkout/cancel", headers=cashier_headers)
        resp = _add(client, cashier_headers, items["Bread"].id)
        assert resp.status_code == 200

    def test_last_unit_race(self, client, items, cashier_headers, second_cashier_headers):
        candy = items["Candy"]
        for headers in (cashier_headers, second_cashier_headers):
            assert _add(client, headers, candy.id).status_code == 200
            client.post("/api/checkout/begin", headers=headers)

        first = _commit(client, cashier_headers, "5")
        second = _commit(client, second_cashier_headers, "5")

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json["code"] == "INSUFFICIENT_STOCK"

        cart = client.get("/api/checkout/cart", headers=second_cashier_headers).json["cart"]
        assert cart["state"] == "FAILED"
        assert cart["last_error"]
        assert cart["items"][0]["name"] == "Candy"

        assert db.session.query(Order).count() == 1
        db.session.expire_all()
        assert db.session.get(Item, candy.id).stock == 0

    def test_logout_discards_cart(self, client, items, cashier_headers):
        _add(client, cashier_headers, items["Water"].id)
        assert len(carts) == 1
        client.post("/api/auth/logout", headers=cashier_headers)
        assert len(carts) == 0

    def test_expired_session_drops_cart(self, client, items, cashier_headers):
        _add(client, cashier_headers, items["Water"].id)
        assert len(carts) == 1
        db.session.query(SessionToken).update({"expires_at": utcnow() - timedelta(hours=1)})
        db.session.commit()

        assert client.get("/api/checkout/cart", headers=cashier_headers).status_code == 401
        assert len(carts) == 0

    def test_idle_session_drops_cart(self, client, items, cashier_headers):
        _add(client, cashier_headers, items["Water"].id)
        db.session.query(SessionToken).update({"last_used_at": utcnow() - timedelta(hours=3)})
        db.session.commit()

        assert client.get("/api/checkout/cart", headers=cashier_headers).status_code == 401
        assert len(carts) == 0

    def test_cleanup_sweeps_carts_of_ended_sessions(self, client, items, cashier, cashier_headers, second_cashier_headers):
        _add(client, cashier_headers, items["Water"].id)
        _add(client, second_cashier_headers, items["Bread"].id)
        assert len(carts) == 2

        # Ended without another request, so nothing has discarded its cart yet
        db.session.query(SessionToken).filter_by(account_id=cashier.id).update(
            {"expires_at": utcnow() - timedelta(minutes=1)}
        )
        db.session.commit()

        session_service.cleanup_expired_sessions()

        assert len(carts) == 1
        cart = client.get("/api/checkout/cart", headers=second_cashier_headers).json["cart"]
        assert cart["items"][0]["name"] == "Bread"
