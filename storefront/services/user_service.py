"""
storefront/services/user_service.py

Purpose: User document management

- User lookup by email
- Compare-and-swap patches guarded by the `_rev` revision token
- Shipping address list maintenance (sort, append, delete by index)
- Profile and avatar updates
- Development-only reset of all users
"""

from typing import Optional, Dict, Any, List
import uuid

from pymongo import ReturnDocument

from storefront.db.mongo import get_users_collection, new_document_id, serialize_document
from storefront.core.exceptions import ConflictError, ResourceNotFoundError
from storefront.core.logging import get_logger, LogContext
from storefront.core.security import hash_password
from storefront.utils.time_utils import utc_now_iso, timestamp_sort_key
from storefront.utils.validation_utils import same_address

logger = get_logger(__name__)

TEST_USER_EMAIL = "test@example.com"
TEST_USER_PASSWORD = "password123"


def _new_revision() -> str:
    return uuid.uuid4().hex


async def get_user_by_email(email: str, projection: Optional[Dict[str, int]] = None) -> Optional[Dict[str, Any]]:
    """
    Retrieves a user by email.

    Returns:
        User document or None if not found
    """
    users = get_users_collection()
    return await users.find_one({"email": email}, projection)


async def require_user(email: str) -> Dict[str, Any]:
    """
    Retrieves a user by email or raises a 404.
    """
    user = await get_user_by_email(email)
    if not user:
        raise ResourceNotFoundError("User not found")
    return user


async def create_user(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Inserts a new user document.

    Args:
        fields: User fields; `email` is required

    Returns:
        The stored document
    """
    now = utc_now_iso()
    user = {
        "_id": new_document_id(),
        "_type": "user",
        "shippingAddresses": [],
        "createdAt": now,
        "updatedAt": now,
        **fields,
        "_rev": _new_revision(),
    }

    users = get_users_collection()
    await users.insert_one(user)
    logger.info("User created", extra={"email": user.get("email")})
    return user


async def patch_user(
    user: Dict[str, Any],
    changes: Dict[str, Any],
    unset: Optional[List[str]] = None
) -> Dict[str, Any]:
    """
    Applies `changes` to a user previously read from the store.

    The write only succeeds when the stored `_rev` still equals the revision
    seen on `user`, so two overlapping read-modify-write requests cannot
    silently overwrite each other.

    Args:
        user: User document as read
        changes: Fields to set
        unset: Fields to remove

    Returns:
        Updated user document

    Raises:
        ConflictError: If the document changed since it was read
    """
    users = get_users_collection()

    seen_rev = user.get("_rev")
    match: Dict[str, Any] = {"_id": user["_id"]}
    match["_rev"] = seen_rev if seen_rev is not None else {"$exists": False}

    update: Dict[str, Any] = {
        "$set": {
            **changes,
            "updatedAt": utc_now_iso(),
            "_rev": _new_revision(),
        }
    }
    if unset:
        update["$unset"] = {field: "" for field in unset}

    updated = await users.find_one_and_update(
        match,
        update,
        return_document=ReturnDocument.AFTER
    )

    if updated is None:
        logger.warning(
            "User patch rejected: revision changed",
            extra={"email": user.get("email")}
        )
        raise ConflictError("User was modified by another request. Please retry.")

    return updated


async def get_sorted_addresses(email: str) -> List[Dict[str, Any]]:
    """
    Shipping addresses of a user, most recently used first.
    Addresses without `lastUsed` go last, keeping their stored order.

    Raises:
        ResourceNotFoundError: If the user does not exist
    """
    user = await get_user_by_email(email, {"shippingAddresses": 1})
    if not user:
        raise ResourceNotFoundError("User not found")

    addresses = user.get("shippingAddresses") or []
    return sorted(
        addresses,
        key=lambda address: timestamp_sort_key(address.get("lastUsed")),
        reverse=True
    )


async def save_address(email: str, address: Dict[str, Any]) -> bool:
    """
    Appends an address unless an identical one is already stored.

    Returns:
        True if the address was added, False if it already existed
    """
    with LogContext(email=email):
        user = await get_user_by_email(email)
        if not user:
            raise ResourceNotFoundError("User not found. Please try logging out and back in.")

        addresses = list(user.get("shippingAddresses") or [])
        if any(same_address(existing, address) for existing in addresses):
            logger.info("Address already exists, skipping")
            return False

        addresses.append(address)
        await patch_user(user, {"shippingAddresses": addresses})
        logger.info("Address saved")
        return True


async def delete_address(email: str, index: int) -> Dict[str, Any]:
    """
    Removes the address at `index`, preserving the order of the rest.
    A negative index counts from the end and is clamped to the first
    address; an index past the end leaves the list unchanged.

    Returns:
        Updated user document
    """
    with LogContext(email=email):
        user = await require_user(email)

        addresses = list(user.get("shippingAddresses") or [])
        if index < 0:
            index = max(len(addresses) + index, 0)
        if index < len(addresses):
            del addresses[index]
        else:
            logger.warning(f"Address index {index} out of range")

        updated = await patch_user(user, {"shippingAddresses": addresses})
        logger.info(f"Address {index} deleted")
        return updated


async def update_profile(email: str, name: str) -> Dict[str, Any]:
    """
    Updates the user's display name.
    """
    user = await require_user(email)
    updated = await patch_user(user, {"name": name})
    logger.info("Profile updated", extra={"email": email})
    return updated


async def update_avatar(email: str, image_url: str) -> Dict[str, Any]:
    """
    Points the user's avatar at an uploaded image.
    """
    user = await require_user(email)
    return await patch_user(user, {"image": image_url})


async def reset_users() -> Dict[str, Any]:
    """
    Deletes every user and inserts a single known test account.
    Development-only utility.

    Returns:
        Count of deleted users and the test credentials
    """
    users = get_users_collection()

    result = await users.delete_many({})
    logger.warning(f"Deleted {result.deleted_count} existing users")

    await create_user({
        "email": TEST_USER_EMAIL,
        "password": hash_password(TEST_USER_PASSWORD),
        "accountStatus": "active",
        "name": "Test User",
    })
    logger.info("Created new test user")

    return {
        "deleted": result.deleted_count,
        "email": TEST_USER_EMAIL,
        "password": TEST_USER_PASSWORD,
    }


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """
    User document without credentials, safe to return to clients.
    """
    hidden = {"password", "resetToken", "resetTokenExpiry"}
    return serialize_document({key: value for key, value in user.items() if key not in hidden})
