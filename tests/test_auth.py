import httpx
import pytest

from storefront.core.security import decode_access_token, verify_password
from storefront.db.mongo import ORDERS, USERS
from storefront.services.auth_service import FORGOT_PASSWORD_MESSAGE
from storefront.services.email_service import email_service
from storefront.utils.time_utils import iso_in


def test_login_returns_bearer_token(client, store):
    store.add_user(password="hunter22")

    response = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "hunter22"})

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert decode_access_token(data["access_token"])["sub"] == "jane@example.com"


def test_login_rejects_wrong_password_and_unknown_user(client, store):
    store.add_user(password="hunter22")

    for body in (
        {"email": "jane@example.com", "password": "wrong"},
        {"email": "nobody@example.com", "password": "hunter22"},
    ):
        response = client.post("/api/auth/login", json=body)
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"


def test_token_from_login_opens_account_endpoints(client, store):
    store.add_user(password="hunter22", name="Jane")
    token = client.post(
        "/api/auth/login", json={"email": "jane@example.com", "password": "hunter22"}
    ).json()["access_token"]

    response = client.post(
        "/api/update-profile",
        json={"name": "J"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 200


def test_check_user(client, store):
    store.add_user(email="guest@example.com", password=None, accountStatus="guest")
    store.add_user(email="member@example.com")

    assert client.get("/api/check-user", params={"email": "guest@example.com"}).json() == {
        "exists": True, "hasPassword": False,
    }
    assert client.get("/api/check-user", params={"email": "member@example.com"}).json() == {
        "exists": True, "hasPassword": True,
    }
    assert client.get("/api/check-user", params={"email": "nobody@example.com"}).json() == {
        "exists": False, "hasPassword": False,
    }
    assert client.get("/api/check-user").status_code == 400


def test_activate_account_for_guest_with_orders(client, store):
    store.insert(
        ORDERS,
        {
            "_id": "order-1", "_type": "order", "orderNumber": "ORD-1",
            "customerEmail": "guest@example.com", "paymentStatus": "paid",
            "createdAt": "2024-04-01T00:00:00.000+00:00",
            "shippingAddress": {"fullName": "Gus Guest", "address1": "5 Elm St", "city": "Reno",
                                "state": "NV", "zipCode": "89501"},
        },
    )

    response = client.post("/api/activate-account", json={"email": "guest@example.com", "password": "longenough"})

    assert response.status_code == 200
    assert response.json()["success"] is True

    user = store.find_one(USERS, {"email": "guest@example.com"})
    assert user["accountStatus"] == "active"
    assert user["name"] == "Gus Guest"
    assert user["shippingAddresses"][0]["line1"] == "5 Elm St"
    assert user["shippingAddresses"][0]["country"] == "US"
    assert user["shippingAddresses"][0]["isDefault"] is True

    order = store.find_one(ORDERS, {"_id": "order-1"})
    assert order["user"] == {"_type": "reference", "_ref": user["_id"]}


def test_activate_account_rejections(client, store):
    store.add_user(email="member@example.com")

    cases = [
        ({"email": "not-an-email", "password": "longenough"}, "Invalid email format"),
        ({"email": "new@example.com", "password": "short"}, "Password must be at least 8 characters long"),
        ({"email": "member@example.com", "password": "longenough"}, "Account already activated. Please log in."),
    ]
    for body, message in cases:
        response = client.post("/api/activate-account", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == message


def test_forgot_password_same_response_for_unknown_email(client, store, sent_emails):
    store.add_user()

    known = client.post("/api/forgot-password", json={"email": "jane@example.com"})
    unknown = client.post("/api/forgot-password", json={"email": "nobody@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json() == {"message": FORGOT_PASSWORD_MESSAGE}

    assert len(sent_emails) == 1
    user = store.find_one(USERS, {"email": "jane@example.com"})
    assert len(user["resetToken"]) == 64
    assert f"reset-password?token={user['resetToken']}" in sent_emails[0]["html"]


def test_forgot_password_requires_email(client):
    response = client.post("/api/forgot-password", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing email."


def test_reset_password_flow(client, store, sent_emails):
    store.add_user(resetToken="tok123", resetTokenExpiry=iso_in(hours=1), accountStatus="guest")

    verify = client.get("/api/reset-password", params={"token": "tok123"})
    assert verify.json() == {"email": "jane@example.com"}

    response = client.post("/api/reset-password", json={"token": "tok123", "password": "brand-new-pass"})
    assert response.status_code == 200

    user = store.find_one(USERS, {"email": "jane@example.com"})
    assert verify_password("brand-new-pass", user["password"])
    assert user["accountStatus"] == "active"
    assert "resetToken" not in user
    assert "resetTokenExpiry" not in user
    assert sent_emails[0]["subject"] == "Your Password Was Reset"

    reused = client.post("/api/reset-password", json={"token": "tok123", "password": "again-and-again"})
    assert reused.status_code == 400


def test_reset_password_expired_token(client, store):
    store.add_user(resetToken="old", resetTokenExpiry=iso_in(hours=-2))

    assert client.get("/api/reset-password", params={"token": "old"}).status_code == 400
    response = client.post("/api/reset-password", json={"token": "old", "password": "whatever1"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid or expired token."


def test_reset_password_missing_fields(client):
    assert client.get("/api/reset-password").json()["error"] == "Missing token."
    assert client.post("/api/reset-password", json={"token": "x"}).json()["error"] == "Missing token or password."


@pytest.fixture
def plain_text_email_api(monkeypatch):
    monkeypatch.setattr(email_service, "api_url", "https://mail.example.com/emails")
    monkeypatch.setattr(email_service, "api_key", "re_test_key")
    requests = []

    async def reply_ok(self, url, **kwargs):
        requests.append(kwargs["json"])
        return httpx.Response(200, text="OK")

    monkeypatch.setattr(httpx.AsyncClient, "post", reply_ok)
    return requests


def test_forgot_password_hides_unreadable_mail_reply(client, store, plain_text_email_api):
    store.add_user()

    known = client.post("/api/forgot-password", json={"email": "jane@example.com"})
    unknown = client.post("/api/forgot-password", json={"email": "nobody@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert len(plain_text_email_api) == 1


def test_reset_password_succeeds_with_unreadable_mail_reply(client, store, plain_text_email_api):
    store.add_user(resetToken="tok456", resetTokenExpiry=iso_in(hours=1))

    response = client.post("/api/reset-password", json={"token": "tok456", "password": "brand-new-pass"})

    assert response.status_code == 200
    assert plain_text_email_api[0]["subject"] == "Your Password Was Reset"


def test_reset_email_escapes_user_name(client, store, sent_emails):
    store.add_user(name="<b>Jane</b>")

    client.post("/api/forgot-password", json={"email": "jane@example.com"})

    assert "Hello &lt;b&gt;Jane&lt;/b&gt;," in sent_emails[0]["html"]
    assert "<b>Jane" not in sent_emails[0]["html"]
