"""
storefront/services/cart_service.py

Purpose: Server-side cart state

- Cart contents live client-side; the store keeps a cleared-cart marker
  per email so other devices can sync an emptied cart
"""

from typing import Any, Dict

from storefront.db.mongo import get_cart_states_collection, new_document_id
from storefront.core.logging import get_logger
from storefront.utils.time_utils import utc_now_iso

logger = get_logger(__name__)


async def clear_cart(email: str) -> Dict[str, Any]:
    """
    Stores an empty cart state for the email with a fresh timestamp.
    The document is written wholesale; earlier states are not merged.

    Returns:
        Stored cart state
    """
    cart_state = {
        "_id": new_document_id(),
        "_type": "cartState",
        "email": email,
        "items": [],
        "lastCleared": utc_now_iso(),
    }

    await get_cart_states_collection().insert_one(cart_state)
    logger.info("Cart cleared", extra={"email": email})

    return cart_state
