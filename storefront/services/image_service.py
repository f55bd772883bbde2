"""
storefront/services/image_service.py

Purpose: Image assets and image URLs

- Builds public URLs from image references stored on content documents
- Uploads binary images (avatars) to the GridFS asset bucket
- Serves stored images back by file name
"""

import mimetypes
from typing import Any, Dict, Optional, Tuple

from gridfs.errors import NoFile

from storefront.core.config import settings
from storefront.core.logging import get_logger
from storefront.db.mongo import get_assets_bucket, new_document_id

logger = get_logger(__name__)

IMAGE_REF_PREFIX = "image-"
DEFAULT_EXTENSION = "png"


def asset_file_name(ref: str) -> Optional[str]:
    """
    Maps an asset reference to its stored file name.

    image-<id>-<ext>          -> <id>.<ext>
    image-<id>-<w>x<h>-<ext>  -> <id>-<w>x<h>.<ext>
    """
    if not ref or not ref.startswith(IMAGE_REF_PREFIX):
        return None
    stem, _, extension = ref[len(IMAGE_REF_PREFIX):].rpartition("-")
    if not stem or not extension:
        return None
    return f"{stem}.{extension}"


def asset_url(file_name: str) -> str:
    return f"{settings.ASSET_BASE_URL.rstrip('/')}/assets/images/{file_name}"


def build_image_url(source: Any) -> Optional[str]:
    """
    Resolves an image field to a URL.

    Accepts an absolute URL, a bare asset reference, or an image object
    ({"asset": {"_ref": ...}} or {"asset": {"url": ...}}).
    Returns None for anything it cannot resolve.
    """
    if not source:
        return None

    if isinstance(source, str):
        if source.startswith(("http://", "https://")):
            return source
        file_name = asset_file_name(source)
        return asset_url(file_name) if file_name else None

    if isinstance(source, dict):
        asset = source.get("asset")
        if isinstance(asset, dict):
            if asset.get("url"):
                return asset["url"]
            return build_image_url(asset.get("_ref") or asset.get("_id"))
        if source.get("url"):
            return source["url"]

    return None


def _extension_for(filename: Optional[str], content_type: Optional[str]) -> str:
    if filename and "." in filename:
        return filename.rsplit(".", 1)[-1].lower()
    if content_type:
        guessed = mimetypes.guess_extension(content_type)
        if guessed:
            return guessed.lstrip(".")
    return DEFAULT_EXTENSION


async def upload_image(
    data: bytes,
    filename: Optional[str] = None,
    content_type: Optional[str] = None
) -> Dict[str, Any]:
    """
    Stores an image in the asset bucket.

    Returns:
        Asset descriptor with `_id` (image reference) and public `url`
    """
    asset_id = new_document_id()
    extension = _extension_for(filename, content_type)
    file_name = f"{asset_id}.{extension}"

    bucket = get_assets_bucket()
    await bucket.upload_from_stream(
        file_name,
        data,
        metadata={
            "contentType": content_type or mimetypes.guess_type(file_name)[0],
            "originalFilename": filename,
        }
    )

    logger.info(f"Image uploaded: {file_name} ({len(data)} bytes)")

    return {
        "_id": f"{IMAGE_REF_PREFIX}{asset_id}-{extension}",
        "_type": "imageAsset",
        "url": asset_url(file_name),
        "originalFilename": filename,
        "size": len(data),
    }


async def open_image(file_name: str) -> Optional[Tuple[bytes, str]]:
    """
    Reads a stored image.

    Returns:
        (bytes, content type) or None if no such file exists
    """
    bucket = get_assets_bucket()
    try:
        stream = await bucket.open_download_stream_by_name(file_name)
    except NoFile:
        return None

    data = await stream.read()
    metadata = stream.metadata or {}
    content_type = metadata.get("contentType") or mimetypes.guess_type(file_name)[0] or "application/octet-stream"
    return data, content_type
