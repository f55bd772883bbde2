"""
storefront/schemas/commerce.py

Purpose: Cart, stock and payment payloads
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List


class ClearCartRequest(BaseModel):
    email: Optional[str] = None


class StockUpdateRequest(BaseModel):
    quantity: Optional[int] = Field(None, description="Units to add or remove")
    type: Optional[str] = Field(None, description="added | released | reduced | reserved")
    reason: Optional[str] = None
    variantId: Optional[str] = None


class CreatePaymentIntentRequest(BaseModel):
    amount: Optional[Any] = Field(None, description="Amount in minor units")
    email: Optional[str] = None
    cartItems: Optional[List[Dict[str, Any]]] = None
    shippingAddress: Optional[Dict[str, Any]] = None
    orderNumber: Optional[str] = None


class CancelPaymentIntentRequest(BaseModel):
    clientSecret: Optional[str] = None


class PaymentIntentCreated(BaseModel):
    clientSecret: Optional[str]
    paymentIntentId: str
    orderNumber: str
    warning: Optional[str] = None


class OrderConfirmationRequest(BaseModel):
    orderId: Optional[str] = None
    email: Optional[str] = None
    orderNumber: Optional[str] = None
    paymentIntentId: Optional[str] = None
    amount: int = Field(0, description="Order total in minor units")
    currency: str = "usd"
    items: Optional[List[Dict[str, Any]]] = None
    shippingAddress: Optional[Dict[str, Any]] = None
    paidAt: Optional[str] = None
