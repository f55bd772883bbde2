"""
storefront/api/orders.py

Purpose: Order lookup endpoints

- Orders by email (direct or via user reference)
- Order status by payment intent or by order number
- Order confirmation e-mail
"""

from fastapi import APIRouter
from typing import Any, Dict, Optional

from storefront.core.exceptions import BadRequestError, ResourceNotFoundError, StorefrontError
from storefront.core.logging import get_logger, LogContext
from storefront.schemas.commerce import OrderConfirmationRequest
from storefront.services import order_service
from storefront.services.email_service import email_service
from storefront.services.payment_service import get_payment_service
from storefront.utils.time_utils import utc_now_iso, from_unix

logger = get_logger(__name__)
router = APIRouter()


@router.get("/list-orders")
async def list_orders(email: Optional[str] = None):
    """
    Orders placed with the email or by a user with that email.
    """
    if not email:
        raise BadRequestError("Missing email")

    try:
        orders = await order_service.list_orders_by_email(email)
    except Exception as e:
        logger.error(f"Error listing orders: {e}", exc_info=True)
        raise StorefrontError("Failed to list orders")

    return {"orders": orders, "timestamp": utc_now_iso()}


@router.get("/orders")
async def account_orders(email: Optional[str] = None):
    """
    Orders for the account page; resolves the user document first.
    """
    if not email:
        raise BadRequestError("Missing email")

    try:
        orders = await order_service.list_account_orders(email)
    except Exception as e:
        logger.error(f"Error fetching orders: {e}", exc_info=True)
        raise StorefrontError("Failed to fetch orders")

    return {"orders": orders}


@router.get("/check-order-status")
async def check_order_status(payment_intent: Optional[str] = None):
    """
    Order for a payment intent, plus pending orders sharing its number.
    """
    if not payment_intent:
        raise BadRequestError("Missing payment_intent")

    try:
        order = await order_service.get_order_by_payment_intent(payment_intent)
        if not order:
            raise ResourceNotFoundError("Order not found")

        pending_orders = await order_service.list_pending_orders(order.get("orderNumber"))
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error checking order status: {e}", exc_info=True)
        raise StorefrontError("Failed to check order status")

    return {
        "order": order,
        "pendingOrders": pending_orders,
        "timestamp": utc_now_iso()
    }


def _payment_intent_details(intent: Dict[str, Any]) -> Dict[str, Any]:
    charges = []
    latest_charge = intent.get("latest_charge")
    if isinstance(latest_charge, dict):
        charges.append({
            "id": latest_charge.get("id"),
            "status": latest_charge.get("status"),
            "created": from_unix(latest_charge.get("created")),
            "failure_message": latest_charge.get("failure_message"),
            "failure_code": latest_charge.get("failure_code"),
        })

    return {
        "status": intent.get("status"),
        "amount": intent.get("amount"),
        "currency": intent.get("currency"),
        "created": from_unix(intent.get("created")),
        "metadata": intent.get("metadata") or {},
        "last_payment_error": intent.get("last_payment_error"),
        "charges": charges,
    }


@router.get("/check-order-by-number")
async def check_order_by_number(orderNumber: Optional[str] = None):
    """
    Latest order with this number and the live status of its payment intent.
    A payment processor failure leaves the payment fields null.
    """
    if not orderNumber:
        raise BadRequestError("Missing orderNumber")

    try:
        orders = await order_service.list_orders_by_number(orderNumber)
        if not orders:
            raise ResourceNotFoundError("Order not found")

        latest_order = orders[0]
        payment_intent_status = None
        payment_intent_details = None

        if latest_order.get("paymentIntentId"):
            try:
                intent = await get_payment_service().retrieve_payment_intent(
                    latest_order["paymentIntentId"],
                    expand=["latest_charge"]
                )
                payment_intent_status = intent.status
                payment_intent_details = _payment_intent_details(intent.to_dict())
            except Exception as e:
                logger.error(f"Error retrieving payment intent: {e}")

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error checking order status: {e}", exc_info=True)
        raise StorefrontError("Failed to check order status")

    return {
        "order": latest_order,
        "allOrders": orders,
        "paymentIntentStatus": payment_intent_status,
        "paymentIntentDetails": payment_intent_details,
        "timestamp": utc_now_iso()
    }


@router.post("/send-order-confirmation")
async def send_order_confirmation(body: OrderConfirmationRequest):
    """
    E-mails the customer a confirmation for a paid order.
    """
    if not body.email:
        raise BadRequestError("Email is required")
    if not body.orderNumber:
        raise BadRequestError("Order number is required")
    if not body.items:
        raise BadRequestError("Order must contain items")

    with LogContext(email=body.email, order_number=body.orderNumber):
        result = await email_service.send_order_confirmation(
            body.email,
            body.orderNumber,
            body.items,
            body.amount,
            currency=body.currency,
            shipping_address=body.shippingAddress,
            payment_intent_id=body.paymentIntentId,
            paid_at=body.paidAt
        )

        if not result.get("success"):
            logger.error(f"Order confirmation email failed: {result.get('error')}")
            raise StorefrontError("Failed to send order confirmation email", details=result.get("error"))

        logger.info(f"Order confirmation sent for order {body.orderId or body.orderNumber}")

    return {"success": True, "messageId": result.get("message_id"), "timestamp": utc_now_iso()}
