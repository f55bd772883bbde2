import pytest
import stripe

from storefront.db.mongo import ORDERS, USERS

CART = [{"name": "Classic Tee", "quantity": 2, "price": 28, "size": "M"}]
CHECKOUT_ADDRESS = {
    "fullName": "\u200bJane Doe ",
    "address1": "1 Main St",
    "city": "Austin",
    "state": "TX",
    "zipCode": "78701",
}


def _create(client, headers=None, **overrides):
    body = {"amount": 5600, "email": "jane@example.com", "cartItems": CART, "shippingAddress": CHECKOUT_ADDRESS}
    body.update(overrides)
    return client.post("/api/create-payment-intent", json=body, headers=headers or {})


def test_guest_checkout_creates_intent_and_pending_order(client, store, payments):
    response = _create(client, orderNumber="ORD-100")

    assert response.status_code == 200
    data = response.json()
    assert data == {
        "clientSecret": "pi_test_1_secret_xyz",
        "paymentIntentId": "pi_test_1",
        "orderNumber": "ORD-100",
    }

    order = store.find_one(ORDERS, {"orderNumber": "ORD-100"})
    assert order["paymentStatus"] == "pending"
    assert order["totalAmount"] == 56.0
    assert order["userId"] == "guest"
    assert "user" not in order
    assert order["shippingAddress"]["name"] == "Jane Doe"
    assert order["shippingAddress"]["country"] == "US"

    intent_id, metadata = payments.metadata_updates[0]
    assert intent_id == "pi_test_1"
    assert metadata == {
        "customerEmail": "jane@example.com",
        "userId": "guest",
        "orderNumber": "ORD-100",
        "orderId": order["_id"],
    }


def test_signed_in_checkout_references_user(client, store, payments, auth_headers):
    response = _create(client, headers=auth_headers("new@example.com"), orderNumber="ORD-200")

    assert response.status_code == 200
    user = store.find_one(USERS, {"email": "new@example.com"})
    order = store.find_one(ORDERS, {"orderNumber": "ORD-200"})
    assert order["userId"] == user["_id"]
    assert order["user"] == {"_type": "reference", "_ref": user["_id"]}


def test_repeat_checkout_updates_pending_order(client, store, payments):
    _create(client, orderNumber="ORD-300")
    _create(client, orderNumber="ORD-300", amount=2800)

    orders = store.find(ORDERS, {"orderNumber": "ORD-300"})
    assert len(orders) == 1
    assert orders[0]["paymentIntentId"] == "pi_test_2"
    assert orders[0]["totalAmount"] == 28.0


def test_generated_order_number(client, payments):
    response = _create(client)
    assert response.json()["orderNumber"].startswith("ORD-")


@pytest.mark.parametrize("overrides, message", [
    ({"cartItems": []}, "No cart items provided"),
    ({"email": None}, "Missing required fields: amount and email are required"),
    ({"amount": "5600"}, "Amount must be a positive number"),
    ({"amount": -5}, "Amount must be a positive number"),
])
def test_create_payment_intent_rejects_bad_input(client, payments, overrides, message):
    response = _create(client, **overrides)
    assert response.status_code == 400
    assert response.json()["error"] == message


def test_store_failure_still_returns_intent(client, payments, monkeypatch):
    from storefront.services import order_service

    async def broken(**kwargs):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(order_service, "save_pending_order", broken)

    response = _create(client, orderNumber="ORD-400")

    assert response.status_code == 200
    data = response.json()
    assert data["paymentIntentId"] == "pi_test_1"
    assert data["warning"] == "Order creation failed, but payment intent was created"


def test_processor_rejection(client, payments):
    payments.error = stripe.InvalidRequestError("Amount too small", "amount", http_status=400)

    response = _create(client)

    assert response.status_code == 400
    assert response.json()["code"] == "PAYMENT_ERROR"


def test_payment_intent_status(client, payments):
    payments.add_intent(id="pi_1", status="processing")

    assert client.get("/api/payment-intent-status", params={"payment_intent": "pi_1"}).json() == {
        "status": "processing"
    }
    assert client.get("/api/payment-intent-status").status_code == 400
    assert client.get("/api/payment-intent-status", params={"payment_intent": "pi_x"}).status_code == 500


def test_payment_intent_details_email_fallbacks(client, payments):
    payments.add_intent(id="pi_meta", metadata={"customerEmail": "meta@example.com"},
                        receipt_email="receipt@example.com", amount=100)
    payments.add_intent(id="pi_receipt", receipt_email="receipt@example.com")
    payments.add_intent(
        id="pi_charge",
        latest_charge={"id": "ch_1", "object": "charge",
                       "billing_details": {"email": "billing@example.com"}},
    )

    def email_for(intent_id):
        return client.get(
            "/api/payment-intent-details", params={"payment_intent": intent_id}
        ).json()["customerEmail"]

    assert email_for("pi_meta") == "meta@example.com"
    assert email_for("pi_receipt") == "receipt@example.com"
    assert email_for("pi_charge") == "billing@example.com"

    details = client.get("/api/payment-intent-details", params={"payment_intent": "pi_meta"}).json()
    assert details["amount"] == 100
    assert details["currency"] == "usd"


def test_cancel_payment_intent_from_client_secret(client, payments):
    payments.add_intent(id="pi_77", status="requires_payment_method")

    response = client.post("/api/cancel-payment-intent", json={"clientSecret": "pi_77_secret_abc"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "status": "canceled"}
    assert payments.cancelled == ["pi_77"]


def test_cancel_payment_intent_requires_secret(client, payments):
    response = client.post("/api/cancel-payment-intent", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing client secret"


def _succeeded_event(payments, order_id, shipping=None):
    payments.add_event("sig-ok", "payment_intent.succeeded", {
        "id": "pi_paid",
        "object": "payment_intent",
        "metadata": {"orderId": order_id},
        "shipping": shipping,
    })


def test_webhook_marks_order_paid(client, store, payments):
    store.insert(ORDERS, {"_id": "order-1", "_type": "order", "orderNumber": "ORD-1",
                          "paymentStatus": "pending", "shippingAddress": {"line1": "old"}})
    _succeeded_event(payments, "order-1", shipping={
        "name": "Jane Doe",
        "address": {"line1": "1 Main St", "line2": None, "city": "Austin",
                    "state": "TX", "postal_code": "78701", "country": "US"},
    })

    response = client.post("/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "sig-ok"})

    assert response.status_code == 200
    assert response.json() == {"received": True}
    order = store.find_one(ORDERS, {"_id": "order-1"})
    assert order["paymentStatus"] == "paid"
    assert order["paymentIntentId"] == "pi_paid"
    assert order["orderNumber"] == "pi_paid"
    assert order["shippingAddress"]["postalCode"] == "78701"


def test_webhook_keeps_address_without_shipping(client, store, payments):
    store.insert(ORDERS, {"_id": "order-2", "_type": "order", "paymentStatus": "pending",
                          "shippingAddress": {"line1": "kept"}})
    _succeeded_event(payments, "order-2")

    client.post("/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "sig-ok"})

    assert store.find_one(ORDERS, {"_id": "order-2"})["shippingAddress"] == {"line1": "kept"}


def test_webhook_signature_checks(client, payments):
    missing = client.post("/api/webhooks/stripe", content=b"{}")
    assert missing.status_code == 400
    assert missing.json()["error"] == "No signature found in request"

    invalid = client.post("/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "forged"})
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "Webhook signature verification failed"


def test_webhook_acknowledges_other_events(client, payments):
    payments.add_event("sig-ok", "charge.refunded", {"id": "ch_1", "object": "charge"}, event_id="evt_2")

    response = client.post("/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "sig-ok"})

    assert response.status_code == 200
    assert response.json() == {"received": True}


def test_webhook_unknown_order_is_an_error(client, payments):
    _succeeded_event(payments, "order-missing")

    response = client.post("/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "sig-ok"})

    assert response.status_code == 500
    assert response.json()["error"] == "Error processing payment_intent.succeeded"
