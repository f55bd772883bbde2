"""
storefront/api/account.py

Purpose: Account endpoints for signed-in users

- Shipping address list: read, save, delete
- Profile name and avatar updates
- Password change
"""

from fastapi import APIRouter, Depends, File, UploadFile
from typing import Optional

from storefront.core.exceptions import BadRequestError, StorefrontError
from storefront.core.logging import get_logger
from storefront.core.security import get_current_user_email
from storefront.schemas.account import (
    SaveAddressRequest,
    DeleteAddressRequest,
    UpdateProfileRequest,
    ChangePasswordRequest,
    AddressListResponse,
    UserResponse,
    AvatarResponse,
)
from storefront.services import auth_service, image_service, user_service
from storefront.utils.validation_utils import validate_address

logger = get_logger(__name__)
router = APIRouter()


@router.get("/get-addresses", response_model=AddressListResponse)
async def get_addresses(userId: Optional[str] = None):
    """
    Shipping addresses of a user (identified by email), most recently used first.
    """
    if not userId:
        raise BadRequestError("User ID is required")

    try:
        addresses = await user_service.get_sorted_addresses(userId)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error fetching addresses: {e}", exc_info=True)
        raise StorefrontError("Failed to fetch addresses")

    logger.debug(f"{len(addresses)} addresses for {userId}")
    return {"addresses": addresses}


@router.post("/save-address")
async def save_address(
    body: SaveAddressRequest,
    email: str = Depends(get_current_user_email),
):
    address = validate_address(body.address)

    try:
        await user_service.save_address(email, address)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error saving address: {e}", exc_info=True)
        raise StorefrontError("Failed to save address")

    return {"success": True}


@router.post("/delete-address", response_model=UserResponse)
async def delete_address(
    body: DeleteAddressRequest,
    email: str = Depends(get_current_user_email),
):
    """
    Removes the address at the given index; remaining addresses keep their order.
    """
    if body.index is None:
        raise BadRequestError("Missing index")

    try:
        user = await user_service.delete_address(email, body.index)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error deleting address: {e}", exc_info=True)
        raise StorefrontError("Failed to delete address")

    return {"success": True, "user": user_service.public_user(user)}


@router.post("/update-profile", response_model=UserResponse)
async def update_profile(
    body: UpdateProfileRequest,
    email: str = Depends(get_current_user_email),
):
    if not body.name:
        raise BadRequestError("Name is required")

    try:
        user = await user_service.update_profile(email, body.name)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error updating profile: {e}", exc_info=True)
        raise StorefrontError("Failed to update profile")

    return {"success": True, "user": user_service.public_user(user)}


@router.post("/upload-avatar", response_model=AvatarResponse)
async def upload_avatar(
    avatar: Optional[UploadFile] = File(None),
    email: str = Depends(get_current_user_email),
):
    """
    Stores the uploaded image, then points the user's avatar at it.
    """
    if avatar is None:
        raise BadRequestError("No file uploaded")

    try:
        data = await avatar.read()
        asset = await image_service.upload_image(data, avatar.filename, avatar.content_type)
        await user_service.update_avatar(email, asset["url"])
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error uploading avatar: {e}", exc_info=True)
        raise StorefrontError("Failed to upload avatar")

    return {"success": True, "imageUrl": asset["url"]}


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    email: str = Depends(get_current_user_email),
):
    if not body.currentPassword or not body.newPassword:
        raise BadRequestError("Current and new password are required")

    try:
        return await auth_service.change_password(email, body.currentPassword, body.newPassword)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error changing password: {e}", exc_info=True)
        raise StorefrontError("Failed to change password")
