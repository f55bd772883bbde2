"""
storefront/services/order_service.py

Purpose: Order lookups and checkout-side order writes

- Orders by email, directly or through a user reference
- Orders by payment intent and by order number
- Pending order creation / update for a new payment intent
- Marking orders paid from payment webhooks
- Linking guest orders to an activated account
"""

import random
import string
import time
from typing import Any, Dict, List, Optional

from storefront.db.mongo import (
    get_orders_collection,
    get_users_collection,
    new_document_id,
    serialize_document,
)
from storefront.core.logging import get_logger, LogContext
from storefront.utils.time_utils import utc_now_iso

logger = get_logger(__name__)

ORDER_LIST_FIELDS = {
    "_id": 1, "orderNumber": 1, "paymentStatus": 1, "paymentIntentId": 1,
    "createdAt": 1, "customerEmail": 1, "totalAmount": 1, "items": 1,
}
ACCOUNT_ORDER_FIELDS = {
    "_id": 1, "orderNumber": 1, "createdAt": 1, "totalAmount": 1,
    "paymentStatus": 1, "items": 1, "shippingAddress": 1, "user": 1, "userId": 1,
}
ORDER_ITEM_KEYS = ("name", "quantity", "price", "image", "color", "size")


def generate_order_number() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def _trim_items(order: Dict[str, Any]) -> Dict[str, Any]:
    order["items"] = [
        {key: item.get(key) for key in ORDER_ITEM_KEYS if key in item}
        for item in order.get("items") or []
    ]
    return order


async def _user_ids_for_email(email: str) -> List[str]:
    cursor = get_users_collection().find({"email": email}, {"_id": 1})
    return [user["_id"] for user in await cursor.to_list(length=None)]


async def list_orders_by_email(email: str) -> List[Dict[str, Any]]:
    """
    Orders placed with this email or referencing a user with this email,
    newest first.
    """
    with LogContext(email=email):
        clauses: List[Dict[str, Any]] = [{"customerEmail": email}]
        user_ids = await _user_ids_for_email(email)
        if user_ids:
            clauses.append({"user._ref": {"$in": user_ids}})

        cursor = get_orders_collection().find({"$or": clauses}, ORDER_LIST_FIELDS).sort("createdAt", -1)
        orders = [_trim_items(order) for order in await cursor.to_list(length=None)]

        logger.info(f"Found {len(orders)} orders")
        return serialize_document(orders)


async def list_account_orders(email: str) -> List[Dict[str, Any]]:
    """
    Orders for an account page.

    The user document is resolved first; when it exists, orders whose
    `user._ref` points at it are included as well. A bare `userId` field
    alone does not qualify an order.
    """
    with LogContext(email=email):
        user = await get_users_collection().find_one({"email": email}, {"_id": 1, "email": 1})

        clauses: List[Dict[str, Any]] = [{"customerEmail": email}]
        if user:
            clauses.append({"user._ref": user["_id"]})

        cursor = get_orders_collection().find({"$or": clauses}, ACCOUNT_ORDER_FIELDS).sort("createdAt", -1)
        orders = await cursor.to_list(length=None)

        for order in orders:
            if isinstance(order.get("user"), dict) and user and order["user"].get("_ref") == user["_id"]:
                order["user"] = {"_id": user["_id"], "email": user["email"]}

        logger.info(f"Found {len(orders)} account orders")
        return serialize_document(orders)


async def get_order_by_payment_intent(payment_intent_id: str) -> Optional[Dict[str, Any]]:
    order = await get_orders_collection().find_one(
        {"paymentIntentId": payment_intent_id},
        {key: value for key, value in ORDER_LIST_FIELDS.items() if key != "items"}
    )
    return serialize_document(order) if order else None


async def list_pending_orders(order_number: str) -> List[Dict[str, Any]]:
    cursor = get_orders_collection().find(
        {"orderNumber": order_number, "paymentStatus": "pending"},
        {"_id": 1, "orderNumber": 1, "paymentStatus": 1, "paymentIntentId": 1, "createdAt": 1}
    )
    return serialize_document(await cursor.to_list(length=None))


async def list_orders_by_number(order_number: str) -> List[Dict[str, Any]]:
    """
    All orders sharing an order number, newest first.
    """
    cursor = get_orders_collection().find({"orderNumber": order_number}, ORDER_LIST_FIELDS).sort("createdAt", -1)
    orders = [_trim_items(order) for order in await cursor.to_list(length=None)]
    return serialize_document(orders)


async def save_pending_order(
    order_number: str,
    email: str,
    items: List[Dict[str, Any]],
    amount: int,
    payment_intent_id: str,
    user_id: str,
    user_doc_id: Optional[str] = None,
    shipping_address: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Creates the pending order for a payment intent, or updates the pending
    order already stored under the same order number.

    Args:
        amount: Amount in minor units; stored as a major-unit total

    Returns:
        Stored order document
    """
    orders = get_orders_collection()

    order_data: Dict[str, Any] = {
        "items": items,
        "shippingAddress": shipping_address,
        "totalAmount": amount / 100,
        "updatedAt": utc_now_iso(),
        "paymentIntentId": payment_intent_id,
        "userId": user_id,
    }
    if user_doc_id:
        order_data["user"] = {"_type": "reference", "_ref": user_doc_id}

    with LogContext(order_number=order_number, email=email):
        existing = await orders.find_one({"orderNumber": order_number, "paymentStatus": "pending"})

        if existing:
            await orders.update_one({"_id": existing["_id"]}, {"$set": order_data})
            logger.info(f"Updated existing order {existing['_id']}")
            return {**existing, **order_data}

        order = {
            "_id": new_document_id(),
            "_type": "order",
            "orderNumber": order_number,
            "customerEmail": email,
            **order_data,
            "paymentStatus": "pending",
            "createdAt": utc_now_iso(),
        }
        await orders.insert_one(order)
        logger.info(f"Created new order {order['_id']}")
        return order


async def mark_order_paid(
    order_id: str,
    payment_intent_id: str,
    shipping_address: Optional[Dict[str, Any]] = None
) -> Optional[Dict[str, Any]]:
    """
    Marks an order paid after a successful payment.
    The existing shipping address is kept when none is supplied.

    Returns:
        Order as it was before the update, or None if it does not exist
    """
    orders = get_orders_collection()
    order = await orders.find_one({"_id": order_id})
    if not order:
        return None

    changes = {
        "paymentStatus": "paid",
        "paymentIntentId": payment_intent_id,
        "orderNumber": payment_intent_id,
        "shippingAddress": shipping_address or order.get("shippingAddress"),
        "updatedAt": utc_now_iso(),
    }
    await orders.update_one({"_id": order_id}, {"$set": changes})

    logger.info(f"Order {order_id} marked paid", extra={"payment_intent": payment_intent_id})
    return order


async def latest_paid_order(email: str) -> Optional[Dict[str, Any]]:
    cursor = get_orders_collection().find(
        {"customerEmail": email, "paymentStatus": "paid"}
    ).sort("createdAt", -1).limit(1)
    orders = await cursor.to_list(length=1)
    return orders[0] if orders else None


async def link_guest_orders(email: str, user_id: str) -> int:
    """
    Attaches orders placed as a guest with this email to the user.

    Returns:
        Number of orders linked
    """
    result = await get_orders_collection().update_many(
        {"customerEmail": email, "user": {"$exists": False}},
        {"$set": {
            "user": {"_type": "reference", "_ref": user_id},
            "updatedAt": utc_now_iso(),
        }}
    )
    if result.modified_count:
        logger.info(f"Linked {result.modified_count} guest orders", extra={"email": email})
    return result.modified_count
