"""
Database initialization script - indexes and starter catalog

Run once against a fresh database:
    python scripts/init_db.py

Creates all indexes and, when the catalog is empty, a small set of
categories, collections and products to browse locally.
"""

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

from storefront.core.logging import setup_logging, get_logger
from storefront.db.mongo import (
    connect_to_mongo,
    close_mongo_connection,
    get_collection,
    CATEGORIES,
    COLLECTIONS,
    PRODUCTS,
)
from storefront.db.indexes import create_indexes
from storefront.utils.time_utils import utc_now_iso

setup_logging()
logger = get_logger("scripts.init_db")


CATEGORY_SEED = [
    {"_id": "category-shirts", "name": "Shirts", "slug": "shirts", "description": "Tees and button-downs"},
    {"_id": "category-outerwear", "name": "Outerwear", "slug": "outerwear", "description": "Jackets and coats"},
    {"_id": "category-accessories", "name": "Accessories", "slug": "accessories", "description": "Caps, bags and belts"},
]

COLLECTION_SEED = [
    {
        "_id": "collection-summer",
        "title": "Summer Essentials",
        "slug": "summer-essentials",
        "callToActionText": "Shop the collection",
        "isActive": True,
    },
    {
        "_id": "collection-archive",
        "title": "Archive",
        "slug": "archive",
        "callToActionText": "Browse the archive",
        "isActive": False,
    },
]


def _product(doc_id, name, slug, price, category_id, stock, variants=None):
    return {
        "_id": doc_id,
        "_type": "product",
        "name": name,
        "slug": slug,
        "price": price,
        "description": f"{name} from the house line.",
        "category": {"_type": "reference", "_ref": category_id},
        "stock": stock,
        "stockStatus": "in_stock" if stock > 5 else ("low_stock" if stock else "out_of_stock"),
        "lowStockThreshold": 5,
        "stockHistory": [],
        "variants": variants or [],
        "createdAt": utc_now_iso(),
    }


PRODUCT_SEED = [
    _product(
        "product-classic-tee", "Classic Tee", "classic-tee", 28.0, "category-shirts", 40,
        variants=[
            {"_key": "tee-black-m", "color": "Black", "size": "M", "stock": 12, "stockStatus": "in_stock"},
            {"_key": "tee-white-l", "color": "White", "size": "L", "stock": 3, "stockStatus": "low_stock"},
        ]
    ),
    _product("product-oxford-shirt", "Oxford Shirt", "oxford-shirt", 64.0, "category-shirts", 18),
    _product("product-field-jacket", "Field Jacket", "field-jacket", 180.0, "category-outerwear", 6),
    _product("product-canvas-tote", "Canvas Tote", "canvas-tote", 35.0, "category-accessories", 0),
]


async def seed_catalog():
    """Inserts starter content into empty catalog collections."""
    for name, documents in (
        (CATEGORIES, CATEGORY_SEED),
        (COLLECTIONS, COLLECTION_SEED),
        (PRODUCTS, PRODUCT_SEED),
    ):
        collection = get_collection(name)
        if await collection.count_documents({}) > 0:
            logger.info(f"'{name}' already has documents, skipping seed")
            continue

        await collection.insert_many(documents)
        logger.info(f"Seeded {len(documents)} documents into '{name}'")


async def main():
    await connect_to_mongo()
    try:
        await create_indexes()
        await seed_catalog()
        logger.info("Database initialized")
    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(main())
