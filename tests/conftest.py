import asyncio

import pytest
import stripe
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from storefront.main import app
from storefront.core.config import settings
from storefront.core.security import create_access_token, hash_password
from storefront.db import mongo
from storefront.services import image_service
from storefront.services.email_service import email_service
from storefront.services.page_cache_service import reset_page_cache_service
from storefront.api import orders as orders_api
from storefront.api import payments as payments_api


def run(coro):
    return asyncio.run(coro)


class Store:
    """Synchronous helpers around the in-memory database for test setup."""

    def __init__(self, database):
        self.database = database

    def insert(self, collection, *documents):
        for document in documents:
            run(self.database[collection].insert_one(dict(document)))

    def find_one(self, collection, query):
        return run(self.database[collection].find_one(query))

    def find(self, collection, query=None):
        return run(self.database[collection].find(query or {}).to_list(length=None))

    def update(self, collection, query, changes):
        run(self.database[collection].update_one(query, {"$set": changes}))

    def add_user(self, email="jane@example.com", password="hunter22", **fields):
        user = {
            "_id": f"user-{email}",
            "_type": "user",
            "email": email,
            "shippingAddresses": [],
            "accountStatus": "active",
            **fields,
        }
        if password:
            user["password"] = hash_password(password)
        self.insert(mongo.USERS, user)
        return user


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)


@pytest.fixture(autouse=True)
def store():
    database = AsyncMongoMockClient()["storefront_test"]
    mongo.use_database(database)
    reset_page_cache_service()
    yield Store(database)
    mongo.use_database(None)
    reset_page_cache_service()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_headers():
    def make(email="jane@example.com"):
        return {"Authorization": f"Bearer {create_access_token(email)}"}
    return make


@pytest.fixture
def sent_emails(monkeypatch):
    sent = []

    async def fake_send(to_email, subject, html):
        sent.append({"to": to_email, "subject": subject, "html": html})
        return {"success": True, "message_id": f"msg_{len(sent)}"}

    monkeypatch.setattr(email_service, "send_email", fake_send)
    return sent


@pytest.fixture
def uploaded_images(monkeypatch):
    uploads = []

    async def fake_upload(data, filename=None, content_type=None):
        uploads.append({"data": data, "filename": filename, "content_type": content_type})
        return {
            "_id": "image-abc123-png",
            "_type": "imageAsset",
            "url": image_service.asset_url("abc123.png"),
            "originalFilename": filename,
            "size": len(data),
        }

    monkeypatch.setattr(image_service, "upload_image", fake_upload)
    return uploads


def make_intent(**values):
    intent = {
        "object": "payment_intent",
        "status": "requires_payment_method",
        "amount": 0,
        "currency": "usd",
        "created": 1700000000,
        "metadata": {},
        "receipt_email": None,
        "latest_charge": None,
        "last_payment_error": None,
        "shipping": None,
    }
    intent.update(values)
    return stripe.PaymentIntent.construct_from(intent, "sk_test_123")


def make_event(event_type, data_object, event_id="evt_1"):
    return stripe.Event.construct_from({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    }, "sk_test_123")


class FakePaymentService:
    """In-memory stand-in for the Stripe-backed payment service."""

    def __init__(self):
        self.intents = {}
        self.raw = {}
        self.metadata_updates = []
        self.cancelled = []
        self.events = {}
        self.error = None

    def add_intent(self, **values):
        self.raw[values["id"]] = dict(values)
        intent = make_intent(**values)
        self.intents[intent.id] = intent
        return intent

    def add_event(self, signature, event_type, data_object, event_id="evt_1"):
        self.events[signature] = make_event(event_type, data_object, event_id)
        return self.events[signature]

    async def create_payment_intent(self, amount, email, metadata):
        if self.error:
            raise self.error
        intent_id = f"pi_test_{len(self.intents) + 1}"
        return self.add_intent(
            id=intent_id,
            amount=amount,
            receipt_email=email,
            metadata=dict(metadata),
            client_secret=f"{intent_id}_secret_xyz",
        )

    async def update_metadata(self, payment_intent_id, metadata):
        self.metadata_updates.append((payment_intent_id, dict(metadata)))
        return self.intents[payment_intent_id]

    async def retrieve_payment_intent(self, payment_intent_id, expand=None):
        if self.error:
            raise self.error
        if payment_intent_id not in self.intents:
            raise stripe.InvalidRequestError(f"No such payment_intent: '{payment_intent_id}'", "intent")
        return self.intents[payment_intent_id]

    async def cancel_payment_intent(self, payment_intent_id):
        self.cancelled.append(payment_intent_id)
        values = self.raw.get(payment_intent_id) or {"id": payment_intent_id}
        return make_intent(**{**values, "status": "canceled"})

    def construct_event(self, payload, signature):
        if signature not in self.events:
            raise stripe.SignatureVerificationError("No signatures found matching the expected signature", signature)
        return self.events[signature]


@pytest.fixture
def payments(monkeypatch):
    service = FakePaymentService()
    monkeypatch.setattr(payments_api, "get_payment_service", lambda: service)
    monkeypatch.setattr(orders_api, "get_payment_service", lambda: service)
    return service
