# tests/test_orders.py
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from storefront.models import Order
from conftest import SAREE, SHIRT, count_orders, seed


def order_payload(items, **extra):
    payload = {"customerName": "A", "address": "X", "items": items}
    payload.update(extra)
    return payload


def test_shirt_order_total_and_response(client):
    seed(client, SHIRT)
    r = client.post("/api/orders", json=order_payload([{"productId": 1, "quantity": 2}]))
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    order_id = body["orderId"]

    stored = client.get(f"/api/orders/{order_id}").json()
    assert stored["total"] == 1798
    assert stored["status"] == "pending"
    assert stored["customerName"] == "A"
    assert stored["address"] == "X"


def test_client_prices_are_ignored(client):
    seed(client, SHIRT, SAREE)
    r = client.post("/api/orders", json=order_payload([
        {"productId": 1, "quantity": 1, "price": 1, "lineTotal": 1},
        {"productId": 2, "quantity": 3, "unitPrice": 0},
    ], total=2))
    order = client.get(f"/api/orders/{r.json()['orderId']}").json()

    assert [i["unitPrice"] for i in order["items"]] == [899.0, 4999.5]
    assert order["total"] == 899 + 3 * 4999.5
    assert order["total"] == sum(i["unitPrice"] * i["quantity"] for i in order["items"])
    for item in order["items"]:
        assert item["lineTotal"] == item["unitPrice"] * item["quantity"]


def test_items_round_trip_field_for_field(client):
    seed(client, SHIRT, SAREE)
    r = client.post("/api/orders", json=order_payload(
        [{"productId": 2, "quantity": 1}, {"productId": 1, "quantity": 4}],
        customerEmail="a@example.com",
        customerPhone="+91 98765 43210",
    ))
    order = client.get(f"/api/orders/{r.json()['orderId']}").json()

    assert order["items"] == [
        {"productId": 2, "name": "Silk Saree", "unitPrice": 4999.5, "quantity": 1, "lineTotal": 4999.5},
        {"productId": 1, "name": "Shirt", "unitPrice": 899.0, "quantity": 4, "lineTotal": 3596.0},
    ]
    assert order["customerEmail"] == "a@example.com"
    assert order["customerPhone"] == "+91 98765 43210"
    assert order["createdAt"]


def test_unknown_product_rejected_without_writing(client):
    seed(client, SHIRT)
    before = count_orders(client)
    r = client.post("/api/orders", json=order_payload([{"productId": 999, "quantity": 1}]))
    assert r.status_code == 400
    assert r.json() == {"error": "Product 999 not found"}
    assert count_orders(client) == before


def test_one_unknown_product_aborts_whole_order(client):
    seed(client, SHIRT)
    r = client.post("/api/orders", json=order_payload([
        {"productId": 1, "quantity": 1},
        {"productId": 42, "quantity": 1},
    ]))
    assert r.status_code == 400
    assert r.json()["error"] == "Product 42 not found"
    assert count_orders(client) == 0


def test_non_numeric_product_id_is_unknown(client):
    seed(client, SHIRT)
    r = client.post("/api/orders", json=order_payload([{"productId": "abc"}]))
    assert r.status_code == 400
    assert r.json() == {"error": "Product abc not found"}


def test_out_of_range_product_id_is_unknown(client):
    seed(client, SHIRT)
    for pid in (99999999999999999999, 2**31, "99999999999999999999"):
        r = client.post("/api/orders", json=order_payload([{"productId": pid}]))
        assert r.status_code == 400
        assert r.json() == {"error": f"Product {pid} not found"}
    assert count_orders(client) == 0


def test_string_product_id_is_accepted(client):
    seed(client, SHIRT)
    r = client.post("/api/orders", json=order_payload([{"productId": "1", "quantity": 1}]))
    assert r.status_code == 200


def test_invalid_payloads(client):
    seed(client, SHIRT)
    good_items = [{"productId": 1, "quantity": 1}]
    bad = [
        order_payload([]),
        {"customerName": "A", "address": "X"},
        order_payload(good_items, customerName=""),
        order_payload(good_items, customerName="   "),
        order_payload(good_items, address=""),
        {"address": "X", "items": good_items},
        order_payload("not-a-list"),
        order_payload([1, 2]),
    ]
    for payload in bad:
        r = client.post("/api/orders", json=payload)
        assert r.status_code == 400, payload
        assert r.json() == {"error": "Invalid order payload"}
    assert count_orders(client) == 0


def test_malformed_body_is_invalid_payload(client):
    r = client.post("/api/orders", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert "error" in r.json()


def test_quantity_is_coerced(client):
    seed(client, SHIRT)
    cases = [("3", 3), ("abc", 1), (None, 1), (0, 1), (-2, 1), (2.7, 2), ("4 pcs", 4), (True, 1)]
    for raw, expected in cases:
        item = {"productId": 1}
        if raw is not None:
            item["quantity"] = raw
        r = client.post("/api/orders", json=order_payload([item]))
        assert r.status_code == 200
        order = client.get(f"/api/orders/{r.json()['orderId']}").json()
        assert order["items"][0]["quantity"] == expected, raw
        assert order["total"] == 899 * expected


def test_get_unknown_order(client):
    assert client.get("/api/orders/999").status_code == 404
    assert client.get("/api/orders/999").json() == {"error": "Order not found"}
    assert client.get("/api/orders/abc").status_code == 404
    assert client.get("/api/orders/99999999999999999999").status_code == 404


def test_notifications_sent_to_admin_and_customer(client, sink):
    seed(client, SHIRT)
    r = client.post("/api/orders", json=order_payload(
        [{"productId": 1, "quantity": 2}], customerEmail="buyer@example.com"))
    order_id = r.json()["orderId"]

    assert [m.to for m in sink.sent] == ["ops@example.com", "buyer@example.com"]
    admin, customer = sink.sent
    assert admin.subject == f"New order #{order_id}"
    assert "2x Shirt - ₹1798.00" in admin.text
    assert "Total: ₹1798.00" in admin.text
    assert customer.subject == f"Order Confirmation - Desi Aura #{order_id}"
    assert "Payment Method: Cash on Delivery" in customer.text
    assert customer.html and "Shirt" in customer.html


def test_no_customer_email_only_notifies_admin(client, sink):
    seed(client, SHIRT)
    client.post("/api/orders", json=order_payload([{"productId": 1}]))
    assert [m.to for m in sink.sent] == ["ops@example.com"]


def test_notification_failure_does_not_affect_order(client, sink, sleeper):
    seed(client, SHIRT)
    sink.fail = True
    r = client.post("/api/orders", json=order_payload(
        [{"productId": 1, "quantity": 2}], customerEmail="buyer@example.com"))

    assert r.status_code == 200
    assert r.json()["success"] is True
    assert client.get(f"/api/orders/{r.json()['orderId']}").json()["total"] == 1798
    # both mails retried up to the bound, none delivered
    assert sink.attempts == 6
    assert sink.sent == []
    assert sleeper.delays == [1.0, 2.0, 1.0, 2.0]


def test_unexpected_provider_exception_is_isolated(client, mailer):
    class Exploding(type(mailer.active)):
        async def send(self, mail):
            raise RuntimeError("provider blew up")

    mailer.active = Exploding()
    seed(client, SHIRT)
    r = client.post("/api/orders", json=order_payload([{"productId": 1}], customerEmail="b@example.com"))
    assert r.status_code == 200
    assert r.json()["success"] is True


def test_storage_failure_rolls_back(client):
    seed(client, SHIRT)

    def fail_insert(mapper, connection, target):
        raise OperationalError("INSERT INTO orders", {}, Exception("disk I/O error"))

    event.listen(Order, "before_insert", fail_insert)
    try:
        r = client.post("/api/orders", json=order_payload([{"productId": 1}]))
    finally:
        event.remove(Order, "before_insert", fail_insert)

    assert r.status_code == 500
    assert r.json() == {"error": "Server error"}
    assert count_orders(client) == 0
