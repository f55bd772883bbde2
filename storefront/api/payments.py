"""
storefront/api/payments.py

Purpose: Payment intent endpoints and the Stripe webhook

- Create a payment intent and its pending order
- Query status / details of a payment intent
- Cancel a payment intent from its client secret
- Mark orders paid when Stripe reports a successful payment
"""

from fastapi import APIRouter, Depends, Header, Request
from typing import Any, Dict, Optional

import stripe

from storefront.core.exceptions import BadRequestError, StorefrontError
from storefront.core.logging import get_logger, LogContext
from storefront.core.security import get_optional_user_email
from storefront.schemas.commerce import (
    CreatePaymentIntentRequest,
    CancelPaymentIntentRequest,
    PaymentIntentCreated,
)
from storefront.services import order_service, user_service
from storefront.services.payment_service import get_payment_service, PaymentServiceError
from storefront.utils.validation_utils import map_checkout_address, payment_intent_id_from_secret

logger = get_logger(__name__)
router = APIRouter()


async def _resolve_user(email: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    User document for a signed-in checkout, created if missing.
    Lookup failures fall back to a guest checkout.
    """
    if not email:
        return None
    try:
        user = await user_service.get_user_by_email(email)
        if not user:
            user = await user_service.create_user({"email": email})
            logger.info(f"Created user document {user['_id']} at checkout")
        return user
    except Exception as e:
        logger.warning(f"User lookup failed, continuing as guest: {e}")
        return None


@router.post("/create-payment-intent", response_model=PaymentIntentCreated, response_model_exclude_none=True)
async def create_payment_intent(
    body: CreatePaymentIntentRequest,
    session_email: Optional[str] = Depends(get_optional_user_email),
):
    """
    Creates a payment intent and the pending order it pays for.

    The intent is returned even when storing the order fails; the response
    then carries a warning.
    """
    if not body.cartItems:
        raise BadRequestError("No cart items provided")
    if not body.amount or not body.email:
        raise BadRequestError("Missing required fields: amount and email are required")
    if not isinstance(body.amount, int) or isinstance(body.amount, bool) or body.amount <= 0:
        raise BadRequestError("Amount must be a positive number")

    user_doc = await _resolve_user(session_email)
    user_id = user_doc["_id"] if user_doc else "guest"
    order_number = body.orderNumber or order_service.generate_order_number()
    shipping_address = map_checkout_address(body.shippingAddress)

    payments = get_payment_service()
    metadata = {
        "customerEmail": body.email,
        "userId": user_id,
        "orderNumber": order_number,
    }

    with LogContext(order_number=order_number, email=body.email):
        try:
            intent = await payments.create_payment_intent(body.amount, body.email, metadata)
        except stripe.StripeError as e:
            logger.error(f"Stripe API error: {e}")
            raise PaymentServiceError(
                e.user_message or "Error creating payment intent",
                status_code=e.http_status or 500
            )

        response = {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "orderNumber": order_number,
        }

        try:
            order = await order_service.save_pending_order(
                order_number=order_number,
                email=body.email,
                items=body.cartItems,
                amount=body.amount,
                payment_intent_id=intent.id,
                user_id=user_id,
                user_doc_id=user_doc["_id"] if user_doc else None,
                shipping_address=shipping_address
            )
            await payments.update_metadata(intent.id, {**metadata, "orderId": order["_id"]})
        except Exception as e:
            logger.error(f"Order store error: {e}", exc_info=True)
            response["warning"] = "Order creation failed, but payment intent was created"

    return response


@router.get("/payment-intent-status")
async def payment_intent_status(payment_intent: Optional[str] = None):
    if not payment_intent:
        raise BadRequestError("Payment intent ID is required")

    try:
        intent = await get_payment_service().retrieve_payment_intent(payment_intent)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error retrieving payment intent: {e}")
        raise PaymentServiceError("Failed to retrieve payment intent status")

    return {"status": intent.status}


def _customer_email(intent: Dict[str, Any]) -> Optional[str]:
    metadata = intent.get("metadata") or {}
    if metadata.get("customerEmail"):
        return metadata["customerEmail"]
    if intent.get("receipt_email"):
        return intent["receipt_email"]

    charge = intent.get("latest_charge")
    if isinstance(charge, dict):
        return (charge.get("billing_details") or {}).get("email")
    return None


@router.get("/payment-intent-details")
async def payment_intent_details(payment_intent: Optional[str] = None):
    """
    Customer email, status and amount of a payment intent.
    """
    if not payment_intent:
        raise BadRequestError("Payment intent ID is required")

    try:
        intent = await get_payment_service().retrieve_payment_intent(
            payment_intent,
            expand=["latest_charge"]
        )
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error retrieving payment intent details: {e}")
        raise PaymentServiceError("Failed to retrieve payment intent details")

    return {
        "customerEmail": _customer_email(intent.to_dict()),
        "status": intent.status,
        "amount": intent.amount,
        "currency": intent.currency,
    }


@router.post("/cancel-payment-intent")
async def cancel_payment_intent(body: CancelPaymentIntentRequest):
    if not body.clientSecret:
        raise BadRequestError("Missing client secret")

    payment_intent_id = payment_intent_id_from_secret(body.clientSecret)

    try:
        intent = await get_payment_service().cancel_payment_intent(payment_intent_id)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error cancelling payment intent: {e}")
        raise PaymentServiceError("Failed to cancel payment intent")

    return {"success": True, "status": intent.status}


def _webhook_shipping(shipping: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not shipping:
        return None
    address = shipping.get("address") or {}
    return {
        "name": shipping.get("name"),
        "line1": address.get("line1"),
        "line2": address.get("line2"),
        "city": address.get("city"),
        "state": address.get("state"),
        "postalCode": address.get("postal_code"),
        "country": address.get("country"),
    }


async def _handle_payment_succeeded(intent: Dict[str, Any]):
    metadata = intent.get("metadata") or {}
    order_id = metadata.get("orderId")

    with LogContext(payment_intent=intent.get("id")):
        if not order_id:
            logger.error("No orderId in payment intent metadata")
            raise StorefrontError("Error processing payment_intent.succeeded")

        order = await order_service.mark_order_paid(
            order_id,
            intent.get("id"),
            _webhook_shipping(intent.get("shipping"))
        )
        if not order:
            logger.error(f"Order not found for orderId: {order_id}")
            raise StorefrontError("Error processing payment_intent.succeeded")


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
):
    """
    Stripe webhook receiver. Only payment_intent.succeeded changes state;
    other events are acknowledged.
    """
    if not stripe_signature:
        raise BadRequestError("No signature found in request")

    payload = await request.body()

    try:
        event = get_payment_service().construct_event(payload, stripe_signature)
    except PaymentServiceError:
        raise
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise BadRequestError("Webhook signature verification failed")

    event_type = event.type
    logger.info(f"Stripe webhook event: {event_type} ({event.id})")

    if event_type == "payment_intent.succeeded":
        await _handle_payment_succeeded(event.data.object.to_dict())
    else:
        logger.info(f"Unhandled event type: {event_type}")

    return {"received": True}
