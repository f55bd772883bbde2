from datetime import timedelta

from storefront.db.mongo import CART_STATES
from storefront.utils.time_utils import parse_iso, utc_now


def test_clear_cart_records_empty_state(client, store):
    before = utc_now()

    response = client.post("/api/cart/clear", json={"email": "jane@example.com"})

    assert response.status_code == 200
    assert response.json() == {"success": True}

    states = store.find(CART_STATES, {"email": "jane@example.com"})
    assert len(states) == 1
    assert states[0]["_type"] == "cartState"
    assert states[0]["items"] == []
    assert parse_iso(states[0]["lastCleared"]) >= before - timedelta(milliseconds=1)


def test_clearing_twice_keeps_both_states(client, store):
    client.post("/api/cart/clear", json={"email": "jane@example.com"})
    client.post("/api/cart/clear", json={"email": "jane@example.com"})

    assert len(store.find(CART_STATES, {"email": "jane@example.com"})) == 2


def test_clear_cart_requires_email(client):
    response = client.post("/api/cart/clear", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Email is required"
