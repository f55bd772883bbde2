"""
storefront/services/payment_service.py

Purpose: Stripe payment intents

- Creates, updates, retrieves and cancels payment intents
- Verifies webhook signatures
- One async StripeClient per process, on an httpx transport
"""

from typing import Any, Dict, List, Optional

import stripe

from storefront.core.config import settings
from storefront.core.exceptions import StorefrontError
from storefront.core.logging import get_logger

logger = get_logger(__name__)


class PaymentServiceError(StorefrontError):
    """Raised when the payment processor rejects a request."""

    def __init__(self, message: str = "Payment processor error", status_code: int = 500):
        super().__init__(message, code="PAYMENT_ERROR", status_code=status_code)


class PaymentService:
    """Service class wrapping the Stripe payment intent API."""

    def __init__(self):
        self._client: Optional[stripe.StripeClient] = None
        self._http_client: Optional[stripe.HTTPXClient] = None

    def _get_client(self) -> stripe.StripeClient:
        if self._client is None:
            if not settings.STRIPE_SECRET_KEY:
                raise PaymentServiceError("Stripe secret key is not configured")
            self._http_client = stripe.HTTPXClient()
            self._client = stripe.StripeClient(
                settings.STRIPE_SECRET_KEY,
                http_client=self._http_client,
            )
        return self._client

    async def create_payment_intent(
        self,
        amount: int,
        email: str,
        metadata: Dict[str, str]
    ) -> stripe.PaymentIntent:
        """
        Creates a payment intent with automatic payment methods.

        Args:
            amount: Amount in minor units
            email: Receipt email
            metadata: Metadata stored on the intent
        """
        client = self._get_client()
        intent = await client.v1.payment_intents.create_async(params={
            "amount": amount,
            "currency": settings.PAYMENT_CURRENCY,
            "automatic_payment_methods": {"enabled": True},
            "metadata": metadata,
            "receipt_email": email,
        })
        logger.info(f"Payment intent created: {intent.id}", extra={"payment_intent": intent.id})
        return intent

    async def update_metadata(self, payment_intent_id: str, metadata: Dict[str, str]) -> stripe.PaymentIntent:
        client = self._get_client()
        return await client.v1.payment_intents.update_async(
            payment_intent_id,
            params={"metadata": metadata}
        )

    async def retrieve_payment_intent(
        self,
        payment_intent_id: str,
        expand: Optional[List[str]] = None
    ) -> stripe.PaymentIntent:
        client = self._get_client()
        params: Dict[str, Any] = {"expand": expand} if expand else {}
        logger.debug(f"Fetching payment intent {payment_intent_id}")
        return await client.v1.payment_intents.retrieve_async(payment_intent_id, params=params)

    async def cancel_payment_intent(self, payment_intent_id: str) -> stripe.PaymentIntent:
        client = self._get_client()
        intent = await client.v1.payment_intents.cancel_async(
            payment_intent_id,
            params={"cancellation_reason": "requested_by_customer"}
        )
        logger.info(f"Payment intent cancelled: {intent.id} ({intent.status})", extra={"payment_intent": intent.id})
        return intent

    def construct_event(self, payload: bytes, signature: str) -> stripe.Event:
        """
        Verifies and parses a webhook payload.

        Raises:
            ValueError: If the payload is not valid JSON
            stripe.SignatureVerificationError: If the signature does not match
        """
        if not settings.STRIPE_WEBHOOK_SECRET:
            raise PaymentServiceError("Stripe webhook secret is not configured")
        client = self._get_client()
        return client.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)

    async def close(self):
        if self._http_client is not None:
            await self._http_client.close_async()
        self._client = None
        self._http_client = None


# Global payment service instance
_payment_service: Optional[PaymentService] = None


def get_payment_service() -> PaymentService:
    """Get or create the global payment service instance."""
    global _payment_service
    if _payment_service is None:
        _payment_service = PaymentService()
    return _payment_service


async def close_payment_service():
    """Close payment service and cleanup resources."""
    global _payment_service
    if _payment_service:
        await _payment_service.close()
        _payment_service = None
