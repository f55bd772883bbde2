"""
storefront/services/content_service.py

Purpose: Content retrieval from the document store

- Category and collection listings
- Product listing (category filter, search, sort, pagination)
- Single product lookup with image URLs expanded
- Product / variant stock status and stock adjustments
"""

import re
from typing import Any, Dict, List, Optional

from storefront.db.mongo import get_collection, serialize_document, CATEGORIES, COLLECTIONS, PRODUCTS
from storefront.core.exceptions import BadRequestError, ResourceNotFoundError
from storefront.core.logging import get_logger
from storefront.services.image_service import build_image_url
from storefront.utils.time_utils import utc_now_iso
from storefront.utils.validation_utils import parse_sort

logger = get_logger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 5

STOCK_INCREASES = {"added", "released"}
STOCK_DECREASES = {"reduced", "reserved"}

CATEGORY_FIELDS = {"_id": 1, "name": 1, "description": 1, "slug": 1, "image": 1}
COLLECTION_FIELDS = {"_id": 1, "title": 1, "slug": 1, "marqueeImage": 1, "callToActionText": 1}
PRODUCT_LIST_FIELDS = {
    "_id": 1, "name": 1, "price": 1, "slug": 1, "mainImage": 1,
    "image": 1, "category": 1, "variants": 1, "description": 1, "createdAt": 1,
}


async def list_categories() -> List[Dict[str, Any]]:
    """
    All categories ordered by name, with `image` resolved to a URL.
    """
    cursor = get_collection(CATEGORIES).find({}, CATEGORY_FIELDS).sort("name", 1)
    categories = await cursor.to_list(length=None)

    return [
        serialize_document({**category, "image": build_image_url(category.get("image"))})
        for category in categories
        if category
    ]


async def list_collections() -> List[Dict[str, Any]]:
    """
    Active marketing collections.
    """
    cursor = get_collection(COLLECTIONS).find({"isActive": True}, COLLECTION_FIELDS)
    return serialize_document(await cursor.to_list(length=None))


async def _category_map(category_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    if not category_ids:
        return {}
    cursor = get_collection(CATEGORIES).find(
        {"_id": {"$in": category_ids}},
        {"_id": 1, "name": 1, "slug": 1}
    )
    return {category["_id"]: category for category in await cursor.to_list(length=None)}


def _category_ref(product: Dict[str, Any]) -> Optional[str]:
    category = product.get("category")
    if isinstance(category, dict):
        return category.get("_ref")
    return None


async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    skip: int = 0,
    limit: int = 12
) -> List[Dict[str, Any]]:
    """
    Product listing.

    Args:
        category: Category slug to filter by
        search: Case-insensitive substring of name or description
        sort: "<field> asc|desc" (default "createdAt desc")
        skip: Number of products to skip
        limit: Maximum number of products

    Returns:
        Products with their category reference expanded
    """
    sort_field, sort_direction = parse_sort(sort)
    if skip < 0 or limit < 0:
        raise BadRequestError("skip and limit must not be negative")

    query: Dict[str, Any] = {}

    if category:
        category_doc = await get_collection(CATEGORIES).find_one({"slug": category}, {"_id": 1})
        if not category_doc:
            return []
        query["category._ref"] = category_doc["_id"]

    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"description": pattern}]

    cursor = (
        get_collection(PRODUCTS)
        .find(query, PRODUCT_LIST_FIELDS)
        .sort(sort_field, sort_direction)
        .skip(skip)
        .limit(limit)
    )
    products = await cursor.to_list(length=None)

    categories = await _category_map(
        list({ref for ref in (_category_ref(p) for p in products) if ref})
    )
    for product in products:
        ref = _category_ref(product)
        product["category"] = categories.get(ref) if ref else None

    return serialize_document(products)


async def get_product(slug: str) -> Dict[str, Any]:
    """
    One product by slug with base, gallery and variant image URLs.

    Raises:
        ResourceNotFoundError: If no product has this slug
    """
    product = await get_collection(PRODUCTS).find_one({"slug": slug})
    if not product:
        raise ResourceNotFoundError("Product not found")

    ref = _category_ref(product)
    if ref:
        product["category"] = (await _category_map([ref])).get(ref)

    product["imageUrl"] = build_image_url(product.get("image"))
    product["imageUrls"] = [
        url for url in (build_image_url(image) for image in product.get("images") or []) if url
    ]
    product["variants"] = [
        {**variant, "imageUrl": build_image_url(variant.get("image"))}
        for variant in product.get("variants") or []
    ]

    return serialize_document(product)


def _stock_status(stock: int, threshold: int) -> str:
    if stock == 0:
        return "out_of_stock"
    if stock <= threshold:
        return "low_stock"
    return "in_stock"


async def _stock_document(slug: str, variant_id: Optional[str]) -> Dict[str, Any]:
    product = await get_collection(PRODUCTS).find_one({"slug": slug})
    if not product:
        raise ResourceNotFoundError("Product or variant not found")

    if not variant_id:
        return product

    for variant in product.get("variants") or []:
        if variant.get("_key") == variant_id:
            return variant
    raise ResourceNotFoundError("Product or variant not found")


async def get_stock(slug: str, variant_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Stock status of a product or one of its variants.
    """
    doc = await _stock_document(slug, variant_id)
    return {
        "stock": doc.get("stock"),
        "stockStatus": doc.get("stockStatus"),
        "lowStockThreshold": doc.get("lowStockThreshold"),
        "stockHistory": doc.get("stockHistory") or [],
    }


async def update_stock(
    slug: str,
    quantity: int,
    change_type: str,
    reason: str,
    variant_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Adjusts stock of a product or variant and records a history entry.

    Args:
        quantity: Positive number of units
        change_type: added | released (increase), reduced | reserved (decrease)
        reason: Free-text reason stored in history

    Returns:
        {"success", "newStock", "stockStatus"}

    Raises:
        BadRequestError: Unknown change type or insufficient stock
    """
    if change_type in STOCK_INCREASES:
        delta = quantity
    elif change_type in STOCK_DECREASES:
        delta = -quantity
    else:
        raise BadRequestError("Invalid stock update type")

    doc = await _stock_document(slug, variant_id)

    new_stock = (doc.get("stock") or 0) + delta
    if new_stock < 0:
        raise BadRequestError("Insufficient stock")

    threshold = doc.get("lowStockThreshold") or DEFAULT_LOW_STOCK_THRESHOLD
    stock_status = _stock_status(new_stock, threshold)

    history = list(doc.get("stockHistory") or [])
    history.append({
        "date": utc_now_iso(),
        "quantity": quantity,
        "type": change_type,
        "reason": reason,
    })

    products = get_collection(PRODUCTS)
    if variant_id:
        await products.update_one(
            {"slug": slug, "variants._key": variant_id},
            {"$set": {
                "variants.$.stock": new_stock,
                "variants.$.stockStatus": stock_status,
                "variants.$.stockHistory": history,
            }}
        )
    else:
        await products.update_one(
            {"slug": slug},
            {"$set": {"stock": new_stock, "stockStatus": stock_status, "stockHistory": history}}
        )

    logger.info(f"Stock for {slug}{'/' + variant_id if variant_id else ''}: {new_stock} ({stock_status})")

    return {"success": True, "newStock": new_stock, "stockStatus": stock_status}
