"""
storefront/db/indexes.py

Purpose: Database index management

- Unique index enforcing one user per email
- Lookup indexes for orders, products and content listings
- Page cache keyed by request path
"""

from pymongo import ASCENDING, DESCENDING

from storefront.db.mongo import (
    get_collection,
    USERS,
    ORDERS,
    CART_STATES,
    CATEGORIES,
    COLLECTIONS,
    PRODUCTS,
    PAGE_CACHE,
)
from storefront.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = get_collection(USERS)
        orders = get_collection(ORDERS)
        cart_states = get_collection(CART_STATES)
        products = get_collection(PRODUCTS)

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS
        # ==============================================

        # One user per email
        await users.create_index("email", unique=True, name="email_unique")
        logger.debug("Created unique index on users.email")

        await users.create_index("resetToken", sparse=True, name="reset_token_idx")
        logger.debug("Created index on users.resetToken")

        # ==============================================
        # ORDERS
        # ==============================================

        await orders.create_index(
            [("customerEmail", ASCENDING), ("createdAt", DESCENDING)],
            name="customer_orders_idx"
        )
        await orders.create_index("user._ref", name="order_user_ref_idx")
        await orders.create_index("orderNumber", name="order_number_idx")
        await orders.create_index("paymentIntentId", name="payment_intent_idx")
        logger.debug("Created order lookup indexes")

        # ==============================================
        # CART / CONTENT
        # ==============================================

        await cart_states.create_index(
            [("email", ASCENDING), ("lastCleared", DESCENDING)],
            name="cart_email_idx"
        )
        await products.create_index("slug", unique=True, name="product_slug_unique")
        await products.create_index("category._ref", name="product_category_idx")
        await get_collection(CATEGORIES).create_index("slug", name="category_slug_idx")
        await get_collection(COLLECTIONS).create_index("isActive", name="collection_active_idx")
        await get_collection(PAGE_CACHE).create_index("path", unique=True, name="page_path_unique")
        logger.debug("Created content indexes")

        logger.info("All database indexes created successfully")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio
    from storefront.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
