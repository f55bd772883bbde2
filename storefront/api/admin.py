"""
storefront/api/admin.py

Purpose: Operational endpoints

- Reset users to a single known test user (development only)
- Revalidate cached content pages with a shared secret
"""

from fastapi import APIRouter
from typing import Optional
import hmac

from storefront.core.config import settings
from storefront.core.exceptions import (
    AuthenticationError,
    BadRequestError,
    ForbiddenError,
    StorefrontError,
)
from storefront.core.logging import get_logger
from storefront.services import user_service
from storefront.services.page_cache_service import get_page_cache_service
from storefront.utils.time_utils import utc_now_iso

logger = get_logger(__name__)
router = APIRouter()


@router.post("/reset-users")
async def reset_users():
    """
    Deletes every user and creates the test user. Refused in production.
    """
    if settings.is_production:
        raise ForbiddenError("User reset is disabled in production")

    try:
        result = await user_service.reset_users()
    except Exception as e:
        logger.error(f"Error resetting users: {e}", exc_info=True)
        raise StorefrontError("Failed to reset users")

    return {
        "message": "Users reset successfully",
        "testUser": {
            "email": result["email"],
            "password": result["password"],
        }
    }


@router.get("/revalidate")
async def revalidate(path: Optional[str] = None, secret: Optional[str] = None):
    """
    Drops the cached body of a content page so the next request rebuilds it.
    """
    if not settings.REVALIDATE_SECRET_TOKEN:
        logger.error("REVALIDATE_SECRET_TOKEN not set")
        raise StorefrontError("Revalidation not configured")

    if not secret or not hmac.compare_digest(secret, settings.REVALIDATE_SECRET_TOKEN):
        logger.warning("Invalid revalidation token")
        raise AuthenticationError("Invalid token")

    if not path:
        raise BadRequestError("Missing path parameter")

    try:
        removed = await get_page_cache_service().invalidate(path)
    except Exception as e:
        logger.error(f"Error revalidating {path}: {e}", exc_info=True)
        raise StorefrontError("Error revalidating")

    logger.info(f"Revalidated {path} ({removed} cached entries dropped)")
    return {
        "revalidated": True,
        "path": path,
        "timestamp": utc_now_iso()
    }
