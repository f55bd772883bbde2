"""
storefront/services/page_cache_service.py

Purpose: Cache rendered content listings by request path

- Stores JSON bodies of content endpoints (categories, collections)
- Serves cached bodies while younger than CONTENT_CACHE_SECONDS
- Revalidation drops the cached body so the next request rebuilds it
"""

from datetime import timedelta
from typing import Optional, Any
from motor.motor_asyncio import AsyncIOMotorCollection

from storefront.db.mongo import get_database, PAGE_CACHE
from storefront.core.config import settings
from storefront.core.logging import get_logger
from storefront.utils.time_utils import utc_now, to_iso

logger = get_logger(__name__)


def normalize_path(path: str) -> str:
    """Cache keys are absolute paths without a trailing slash."""
    path = "/" + path.strip().lstrip("/")
    return path.rstrip("/") or "/"


class PageCacheService:
    """Service for caching content listings in the document store."""

    def __init__(self):
        self.collection: Optional[AsyncIOMotorCollection] = None

    def _get_collection(self) -> AsyncIOMotorCollection:
        """Get page_cache collection."""
        if self.collection is None:
            self.collection = get_database()[PAGE_CACHE]
        return self.collection

    async def get(self, path: str, max_age_seconds: Optional[int] = None) -> Optional[Any]:
        """
        Retrieves a cached body for a path.

        Args:
            path: Request path the body was cached under
            max_age_seconds: Maximum age (defaults to CONTENT_CACHE_SECONDS)

        Returns:
            Cached body or None if not cached/expired
        """
        collection = self._get_collection()
        max_age = settings.CONTENT_CACHE_SECONDS if max_age_seconds is None else max_age_seconds
        cutoff = to_iso(utc_now() - timedelta(seconds=max_age))

        cached = await collection.find_one({
            "path": normalize_path(path),
            "cachedAt": {"$gte": cutoff}
        })

        if cached:
            logger.debug(f"Page cache hit: {path}")
            return cached.get("body")

        logger.debug(f"Page cache miss: {path}")
        return None

    async def set(self, path: str, body: Any) -> bool:
        """
        Caches a body under a path, replacing any previous entry.
        """
        collection = self._get_collection()

        result = await collection.update_one(
            {"path": normalize_path(path)},
            {"$set": {"body": body, "cachedAt": to_iso(utc_now())}},
            upsert=True
        )
        return result.acknowledged

    async def invalidate(self, path: str) -> int:
        """
        Drops the cached body for a path.

        Returns:
            Number of cache entries removed
        """
        collection = self._get_collection()

        result = await collection.delete_many({"path": normalize_path(path)})

        if result.deleted_count > 0:
            logger.info(f"Page cache invalidated: {path}")

        return result.deleted_count


# Global service instance
_page_cache_service: Optional[PageCacheService] = None


def get_page_cache_service() -> PageCacheService:
    """Get or create page cache service instance."""
    global _page_cache_service
    if _page_cache_service is None:
        _page_cache_service = PageCacheService()
    return _page_cache_service


def reset_page_cache_service():
    """Forget the cached collection handle (after the database changes)."""
    global _page_cache_service
    _page_cache_service = None
