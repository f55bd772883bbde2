"""
storefront/schemas/account.py

Purpose: Account endpoint payloads

- Request bodies for address, profile and password changes
- Fields are optional so handlers can answer missing input with 400
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List


class SaveAddressRequest(BaseModel):
    address: Optional[Dict[str, Any]] = None


class DeleteAddressRequest(BaseModel):
    index: Optional[int] = Field(None, description="Position in the stored address list")


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None


class AddressListResponse(BaseModel):
    addresses: List[Dict[str, Any]]


class UserResponse(BaseModel):
    success: bool = True
    user: Dict[str, Any]


class AvatarResponse(BaseModel):
    success: bool = True
    imageUrl: str
