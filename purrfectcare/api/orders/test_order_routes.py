# purrfectcare/api/orders/test_order_routes.py
from unittest.mock import patch

import pytest
import requests
from bson import ObjectId

KHALTI_SESSION = {
    "pidx": "bZQLD9wRVWo4CdESSfuSsB",
    "payment_url": "https://test-pay.khalti.com/?pidx=bZQLD9wRVWo4CdESSfuSsB",
    "expires_at": "2026-10-19T12:00:00+05:45"
}

@pytest.fixture
def buyer(make_user):
    return make_user(name="Buyer", phone_number="9800000001")

@pytest.fixture
def headers(buyer, auth_headers):
    return auth_headers(buyer)

@pytest.fixture
def fill_cart(client, headers):
    def _fill_cart(*lines):
        for product, quantity in lines:
            response = client.post("/api/cart/items", json={"productId": product.id, "quantity": quantity}, headers=headers)
            assert response.status_code == 200, response.get_json()
    return _fill_cart

@pytest.fixture
def place_order(client, headers):
    def _place_order(**payload):
        body = {"deliveryAddress": "Jhamsikhel, Lalitpur", **payload}
        return client.post("/api/orders", json=body, headers=headers)
    return _place_order

def _stock(mongo, product):
    return mongo.products.find_one({"_id": ObjectId(product.id)})["stock_qty"]

def test_place_order_from_cart(client, mongo, buyer, headers, make_product, fill_cart, place_order):
    kibble = make_product(name="Kibble", price=250, stock_qty=10)
    toy = make_product(name="Toy", price=99.99, category="toys")
    fill_cart((kibble, 2), (toy, 1))

    response = place_order(notes="  Leave at the door  ")

    assert response.status_code == 201
    order = response.get_json()
    assert order["status"] == "pending"
    assert order["paymentMethod"] == "cod"
    assert order["deliveryAddress"] == "Jhamsikhel, Lalitpur"
    assert order["notes"] == "Leave at the door"
    assert order["totalAmount"] == 599.99
    assert order["payment"]["status"] == "pending"
    assert order["payment"]["amount"] == 599.99
    assert [i["nameSnapshot"] for i in order["items"]] == ["Kibble", "Toy"]

    assert _stock(mongo, kibble) == 8
    assert _stock(mongo, toy) is None
    assert client.get("/api/cart", headers=headers).get_json()["items"] == []

def test_order_uses_current_product_price(mongo, make_product, fill_cart, place_order):
    kibble = make_product(price=100)
    fill_cart((kibble, 1))
    mongo.products.update_one({}, {"$set": {"price": 150, "name": "Kibble v2"}})

    order = place_order().get_json()

    assert order["totalAmount"] == 150
    assert order["items"][0]["nameSnapshot"] == "Kibble v2"

def test_place_order_validation(client, headers, make_product, fill_cart, place_order):
    empty = place_order()
    assert empty.status_code == 400
    assert empty.get_json()["error"] == "Cart is empty"

    fill_cart((make_product(), 1))
    no_address = client.post("/api/orders", json={"deliveryAddress": "   "}, headers=headers)
    assert "Delivery address is required" in no_address.get_json()["error"]

    bad_method = place_order(paymentMethod="bitcoin")
    assert "Invalid payment method. Must be one of: khalti, cod" in bad_method.get_json()["error"]

def test_unavailable_product_blocks_checkout(mongo, make_product, fill_cart, place_order):
    kibble = make_product(name="Kibble", stock_qty=5)
    toy = make_product(name="Toy", category="toys")
    fill_cart((kibble, 1), (toy, 1))
    mongo.products.update_one({"_id": ObjectId(toy.id)}, {"$set": {"is_active": False}})

    response = place_order()

    assert response.status_code == 400
    assert response.get_json()["error"] == 'Product "Toy" is no longer available. Please remove it from your cart.'
    # 실패한 주문은 재고를 건드리지 않습니다.
    assert _stock(mongo, kibble) == 5
    assert mongo.orders.count_documents({}) == 0

def test_insufficient_stock_blocks_checkout(mongo, make_product, fill_cart, place_order):
    kibble = make_product(name="Kibble", stock_qty=5)
    fill_cart((kibble, 4))
    mongo.products.update_one({}, {"$set": {"stock_qty": 2}})

    response = place_order()

    assert response.get_json()["error"] == 'Insufficient stock for "Kibble". Only 2 available.'
    assert _stock(mongo, kibble) == 2

def test_list_and_get_orders(client, headers, make_user, auth_headers, make_product, fill_cart, place_order):
    product = make_product()
    fill_cart((product, 1))
    order_id = place_order().get_json()["_id"]

    listing = client.get("/api/orders", headers=headers).get_json()
    assert [o["_id"] for o in listing["orders"]] == [order_id]
    assert listing["pagination"]["total"] == 1
    assert client.get("/api/orders?status=cancelled", headers=headers).get_json()["orders"] == []

    assert client.get(f"/api/orders/{order_id}", headers=headers).status_code == 200
    stranger = client.get(f"/api/orders/{order_id}", headers=auth_headers(make_user()))
    assert stranger.status_code == 403
    assert client.get("/api/orders/xyz", headers=headers).get_json()["error"] == "Invalid order ID"

def test_cancel_restores_stock(client, mongo, headers, make_product, fill_cart, place_order):
    kibble = make_product(stock_qty=10)
    fill_cart((kibble, 3))
    order_id = place_order().get_json()["_id"]
    assert _stock(mongo, kibble) == 7

    response = client.put(f"/api/orders/{order_id}/cancel", headers=headers)

    assert response.status_code == 200
    assert response.get_json()["message"] == "Order cancelled successfully"
    order = response.get_json()["order"]
    assert order["status"] == "cancelled"
    assert order["payment"]["status"] == "failed"
    assert _stock(mongo, kibble) == 10

    again = client.put(f"/api/orders/{order_id}/cancel", headers=headers)
    assert again.get_json()["error"] == 'Cannot cancel order with status "cancelled"'
    assert _stock(mongo, kibble) == 10

def test_khalti_payment_flow(app, client, mongo, buyer, headers, make_product, fill_cart, place_order):
    khalti = app.services['khalti']
    fill_cart((make_product(price=500), 1))
    order_id = place_order(paymentMethod="KHALTI").get_json()["_id"]

    with patch.object(khalti, 'initiate_payment', return_value=KHALTI_SESSION) as initiate:
        session = client.post(f"/api/orders/{order_id}/payment/khalti", headers=headers)

    assert session.status_code == 200
    assert session.get_json() == KHALTI_SESSION
    called_order_id, called_amount, customer = initiate.call_args.args
    assert (called_order_id, called_amount) == (order_id, 500)
    assert customer["email"] == buyer["email"]

    mismatch = client.post(f"/api/orders/{order_id}/confirm-payment", json={"pidx": "other"}, headers=headers)
    assert mismatch.status_code == 400

    completed = {
        "pidx": KHALTI_SESSION["pidx"], "status": "Completed",
        "transaction_id": "GFq9PFS7b2iYvL8Lir9oXe", "total_amount": 50000
    }
    with patch.object(khalti, 'lookup_payment', return_value=completed) as lookup:
        # 클라이언트가 보낸 status 값은 결과에 영향을 주지 않습니다.
        confirmed = client.put(f"/api/orders/{order_id}/confirm-payment", json={"status": "Failed"}, headers=headers)

    lookup.assert_called_once_with(KHALTI_SESSION["pidx"])
    order = confirmed.get_json()
    assert order["status"] == "confirmed"
    assert order["payment"]["status"] == "completed"
    assert order["payment"]["transactionId"] == "GFq9PFS7b2iYvL8Lir9oXe"

    paid_cancel = client.put(f"/api/orders/{order_id}/cancel", headers=headers)
    assert paid_cancel.status_code == 400

    with patch.object(khalti, 'lookup_payment') as lookup:
        repeat = client.post(f"/api/orders/{order_id}/confirm-payment", json={}, headers=headers)
    lookup.assert_not_called()
    assert repeat.get_json()["status"] == "confirmed"

def test_khalti_payment_not_completed(app, client, headers, make_product, fill_cart, place_order):
    khalti = app.services['khalti']
    fill_cart((make_product(), 1))
    order_id = place_order(paymentMethod="khalti").get_json()["_id"]

    not_started = client.post(f"/api/orders/{order_id}/confirm-payment", json={}, headers=headers)
    assert not_started.get_json()["error"] == "Payment has not been initiated for this order"

    with patch.object(khalti, 'initiate_payment', return_value=KHALTI_SESSION):
        client.post(f"/api/orders/{order_id}/payment/khalti", headers=headers)
    with patch.object(khalti, 'lookup_payment', return_value={"pidx": KHALTI_SESSION["pidx"], "status": "User canceled"}):
        response = client.post(f"/api/orders/{order_id}/confirm-payment", json={}, headers=headers)

    order = response.get_json()
    assert order["status"] == "pending"
    assert order["payment"]["status"] == "failed"

def test_khalti_initiation_rejected_for_cod_order(client, headers, make_product, fill_cart, place_order):
    fill_cart((make_product(), 1))
    order_id = place_order().get_json()["_id"]

    response = client.post(f"/api/orders/{order_id}/payment/khalti", headers=headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == "This order does not use Khalti payment"

def test_khalti_gateway_failure_returns_502(app, client, headers, make_product, fill_cart, place_order):
    fill_cart((make_product(), 1))
    order_id = place_order(paymentMethod="khalti").get_json()["_id"]

    with patch('purrfectcare.services.khalti_service.requests.post', side_effect=requests.ConnectionError("down")):
        response = client.post(f"/api/orders/{order_id}/payment/khalti", headers=headers)

    assert response.status_code == 502
    assert response.get_json()["error_code"] == "PAYMENT_GATEWAY_ERROR"

def test_khalti_pidx_cannot_confirm_another_order(app, client, mongo, headers, make_product, fill_cart, place_order):
    khalti = app.services['khalti']
    fill_cart((make_product(name="Treats", price=10), 1))
    paid_id = place_order(paymentMethod="khalti").get_json()["_id"]
    with patch.object(khalti, 'initiate_payment', return_value=KHALTI_SESSION):
        client.post(f"/api/orders/{paid_id}/payment/khalti", headers=headers)

    completed = {"pidx": KHALTI_SESSION["pidx"], "status": "Completed", "transaction_id": "T-1", "total_amount": 1000}
    with patch.object(khalti, 'lookup_payment', return_value=completed):
        assert client.post(f"/api/orders/{paid_id}/confirm-payment", json={}, headers=headers).get_json()["status"] == "confirmed"

    fill_cart((make_product(name="Cat Tree", price=5000), 1))
    cod_id = place_order().get_json()["_id"]
    fill_cart((make_product(name="Litter", price=5000), 1))
    khalti_id = place_order(paymentMethod="khalti").get_json()["_id"]

    with patch.object(khalti, 'lookup_payment', return_value=completed) as lookup:
        cod = client.post(f"/api/orders/{cod_id}/confirm-payment", json={"pidx": KHALTI_SESSION["pidx"]}, headers=headers)
        not_initiated = client.post(
            f"/api/orders/{khalti_id}/confirm-payment", json={"pidx": KHALTI_SESSION["pidx"]}, headers=headers
        )

    lookup.assert_not_called()
    assert cod.status_code == 400
    assert cod.get_json()["error"] == "This order does not use Khalti payment"
    assert not_initiated.status_code == 400
    assert not_initiated.get_json()["error"] == "Payment has not been initiated for this order"
    for order_id in (cod_id, khalti_id):
        stored = mongo.orders.find_one({"_id": ObjectId(order_id)})
        assert stored["status"] == "pending"
        assert stored["payment"]["status"] == "pending"

def test_khalti_lookup_amount_must_match_order(app, client, mongo, headers, make_product, fill_cart, place_order):
    khalti = app.services['khalti']
    fill_cart((make_product(price=5000), 1))
    order_id = place_order(paymentMethod="khalti").get_json()["_id"]
    with patch.object(khalti, 'initiate_payment', return_value=KHALTI_SESSION):
        client.post(f"/api/orders/{order_id}/payment/khalti", headers=headers)

    underpaid = {"pidx": KHALTI_SESSION["pidx"], "status": "Completed", "transaction_id": "T-2", "total_amount": 1000}
    with patch.object(khalti, 'lookup_payment', return_value=underpaid):
        response = client.post(f"/api/orders/{order_id}/confirm-payment", json={}, headers=headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == "Payment details do not match this order"
    assert mongo.orders.find_one({"_id": ObjectId(order_id)})["status"] == "pending"

def test_failed_stock_reservation_rolls_back(app, client, mongo, headers, make_product, fill_cart, place_order):
    kibble = make_product(name="Kibble", stock_qty=5)
    toy = make_product(name="Toy", category="toys", stock_qty=3)
    fill_cart((kibble, 2), (toy, 1))
    orders = app.services['orders']
    validate = orders._validate_cart_items

    def validate_then_sell_out(cart):
        # 검증 직후 다른 주문이 마지막 재고를 가져간 상황
        validated = validate(cart)
        mongo.products.update_one({"_id": ObjectId(toy.id)}, {"$set": {"stock_qty": 0}})
        return validated

    with patch.object(orders, '_validate_cart_items', side_effect=validate_then_sell_out):
        response = place_order()

    assert response.status_code == 400
    assert response.get_json()["error"] == 'Insufficient stock for "Toy". Only 0 available.'
    assert _stock(mongo, kibble) == 5
    assert _stock(mongo, toy) == 0
    assert mongo.orders.count_documents({}) == 0
    assert len(client.get("/api/cart", headers=headers).get_json()["items"]) == 2
