"""
storefront/api/cart.py

Purpose: Cart state endpoint

- Clearing a cart records an empty cart state for the email
"""

from fastapi import APIRouter

from storefront.core.exceptions import BadRequestError, StorefrontError
from storefront.core.logging import get_logger
from storefront.schemas.commerce import ClearCartRequest
from storefront.services import cart_service

logger = get_logger(__name__)
router = APIRouter()


@router.post("/cart/clear")
async def clear_cart(body: ClearCartRequest):
    if not body.email:
        raise BadRequestError("Email is required")

    try:
        await cart_service.clear_cart(body.email)
    except Exception as e:
        logger.error(f"Error clearing cart: {e}", exc_info=True)
        raise StorefrontError("Failed to clear cart")

    return {"success": True}
