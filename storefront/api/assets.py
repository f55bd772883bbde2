"""
storefront/api/assets.py

Purpose: Serve stored image assets by file name
"""

from fastapi import APIRouter, Response

from storefront.core.exceptions import ResourceNotFoundError
from storefront.services import image_service

router = APIRouter()

ASSET_CACHE_CONTROL = "public, max-age=31536000, immutable"


@router.get("/assets/images/{name}")
async def get_image(name: str):
    image = await image_service.open_image(name)
    if image is None:
        raise ResourceNotFoundError("Image not found")

    data, content_type = image
    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": ASSET_CACHE_CONTROL}
    )
