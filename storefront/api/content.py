"""
storefront/api/content.py

Purpose: Content endpoints

- Category and collection listings (served from the page cache when fresh)
- Product listing and product detail
- Product / variant stock status and stock adjustments
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from typing import Optional

from storefront.core.exceptions import BadRequestError, StorefrontError
from storefront.core.logging import get_logger
from storefront.core.security import get_current_user_email
from storefront.schemas.commerce import StockUpdateRequest
from storefront.services import content_service
from storefront.services.page_cache_service import get_page_cache_service

logger = get_logger(__name__)
router = APIRouter()

PRODUCT_LIST_CACHE_CONTROL = "public, s-maxage=3600, stale-while-revalidate=86400"


@router.get("/categories")
async def list_categories(request: Request):
    """
    All categories ordered by name, image references resolved to URLs.
    """
    try:
        cache = get_page_cache_service()
        cached = await cache.get(request.url.path)
        if cached is not None:
            return cached

        categories = await content_service.list_categories()
        await cache.set(request.url.path, categories)
        return categories

    except Exception as e:
        logger.error(f"Error fetching categories: {e}", exc_info=True)
        raise StorefrontError("Failed to fetch categories")


@router.get("/collections")
async def list_collections(request: Request):
    """
    Active marketing collections.
    """
    try:
        cache = get_page_cache_service()
        cached = await cache.get(request.url.path)
        if cached is not None:
            return cached

        collections = await content_service.list_collections()
        await cache.set(request.url.path, collections)
        return collections

    except Exception as e:
        logger.error(f"Error fetching collections: {e}", exc_info=True)
        raise StorefrontError("Failed to fetch collections")


@router.get("/products")
async def list_products(
    category: Optional[str] = Query(None, description="Category slug"),
    search: Optional[str] = Query(None, description="Text matched against name and description"),
    sort: str = Query("createdAt desc", description="<field> asc|desc"),
    limit: int = Query(12, ge=0),
    skip: int = Query(0, ge=0),
):
    try:
        products = await content_service.list_products(
            category=category,
            search=search,
            sort=sort,
            skip=skip,
            limit=limit
        )
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error fetching products: {e}", exc_info=True)
        raise StorefrontError("Failed to fetch products")

    return JSONResponse(
        content=products,
        headers={"Cache-Control": PRODUCT_LIST_CACHE_CONTROL}
    )


@router.get("/products/{slug}")
async def get_product(slug: str):
    """
    One product with base, gallery and variant image URLs.
    """
    try:
        return await content_service.get_product(slug)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error fetching product {slug}: {e}", exc_info=True)
        raise StorefrontError("Failed to fetch product")


@router.get("/products/{slug}/stock")
async def get_stock(slug: str, variantId: Optional[str] = None):
    try:
        return await content_service.get_stock(slug, variantId)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Stock status error: {e}", exc_info=True)
        raise StorefrontError("Failed to get stock status")


@router.patch("/products/{slug}/stock")
async def update_stock(
    slug: str,
    body: StockUpdateRequest,
    email: str = Depends(get_current_user_email),
):
    """
    Adjusts stock of a product or variant. Requires a signed-in user.
    """
    if not body.quantity or not body.type or not body.reason:
        raise BadRequestError("Missing required fields")
    if body.quantity < 0:
        raise BadRequestError("Quantity must be positive")

    try:
        result = await content_service.update_stock(
            slug,
            body.quantity,
            body.type,
            body.reason,
            body.variantId
        )
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Stock update error: {e}", exc_info=True)
        raise StorefrontError("Failed to update stock")

    logger.info(f"Stock updated by {email}")
    return result
