"""
storefront/services/auth_service.py

Purpose: Account credentials lifecycle

- Password login issuing bearer tokens
- Account existence check
- Account activation for guest customers
- Forgot / reset password with emailed one-hour tokens
- Password change for signed-in users
"""

from typing import Any, Dict, Optional

from storefront.core.config import settings
from storefront.core.exceptions import AuthenticationError, BadRequestError
from storefront.core.logging import get_logger, LogContext
from storefront.core.security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    verify_password,
)
from storefront.db.mongo import get_users_collection
from storefront.services import order_service, user_service
from storefront.services.email_service import email_service
from storefront.utils.time_utils import iso_in, utc_now_iso
from storefront.utils.validation_utils import map_checkout_address, validate_email_format

logger = get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = "If your email exists, you will receive a reset link soon."
MIN_PASSWORD_LENGTH = 8


async def login(email: str, password: str) -> Dict[str, Any]:
    """
    Verifies credentials and issues an access token.

    Raises:
        AuthenticationError: Unknown user, no password set, or wrong password
    """
    user = await user_service.get_user_by_email(email, {"password": 1, "email": 1})
    if not user or not verify_password(password, user.get("password")):
        logger.info("Login rejected", extra={"email": email})
        raise AuthenticationError("Invalid email or password")

    return {
        "access_token": create_access_token(user["email"]),
        "token_type": "bearer",
    }


async def check_user(email: str) -> Dict[str, bool]:
    """
    Whether an account exists for the email and has a password set.
    """
    user = await user_service.get_user_by_email(email, {"_id": 1, "password": 1})
    return {
        "exists": user is not None,
        "hasPassword": bool(user and user.get("password")),
    }


def _default_address(order: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not order or not order.get("shippingAddress"):
        return None
    address = map_checkout_address(order["shippingAddress"])
    return {"_type": "address", **address, "isDefault": True}


async def activate_account(email: str, password: str) -> Dict[str, Any]:
    """
    Sets a password on a guest customer's account.

    The most recent paid order's shipping address becomes the default
    address, and guest orders placed with the email are linked to the user.

    Raises:
        BadRequestError: Invalid input or account already active
    """
    if not validate_email_format(email):
        raise BadRequestError("Invalid email format")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise BadRequestError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    with LogContext(email=email):
        existing = await user_service.get_user_by_email(email)
        if existing and existing.get("accountStatus") == "active" and existing.get("password"):
            raise BadRequestError("Account already activated. Please log in.")

        fields: Dict[str, Any] = {
            "password": hash_password(password),
            "accountStatus": "active",
        }

        address = _default_address(await order_service.latest_paid_order(email))
        if address:
            fields["name"] = address.get("name")
            fields["shippingAddresses"] = [address]

        if existing:
            logger.info("Activating existing user")
            user = await user_service.patch_user(existing, fields)
        else:
            logger.info("Creating user during activation")
            user = await user_service.create_user({"email": email, **fields})

        await order_service.link_guest_orders(email, user["_id"])

    return {
        "message": "Account activated successfully! You can now log in.",
        "success": True,
    }


async def forgot_password(email: str) -> Dict[str, str]:
    """
    Emails a reset link when the account exists.
    The response is identical whether or not it does.
    """
    with LogContext(email=email):
        user = await user_service.get_user_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return {"message": FORGOT_PASSWORD_MESSAGE}

        token = generate_reset_token()
        await user_service.patch_user(user, {
            "resetToken": token,
            "resetTokenExpiry": iso_in(hours=settings.PASSWORD_RESET_TOKEN_HOURS),
        })

        reset_url = f"{settings.BASE_URL.rstrip('/')}/reset-password?token={token}"
        result = await email_service.send_password_reset(user["email"], user.get("name"), reset_url)
        if not result.get("success"):
            logger.error(f"Password reset email failed: {result.get('error')}")

    return {"message": FORGOT_PASSWORD_MESSAGE}


async def find_user_by_reset_token(token: str) -> Optional[Dict[str, Any]]:
    """
    User holding an unexpired reset token, or None.
    """
    return await get_users_collection().find_one({
        "resetToken": token,
        "resetTokenExpiry": {"$gt": utc_now_iso()},
    })


async def verify_reset_token(token: str) -> Dict[str, str]:
    user = await find_user_by_reset_token(token)
    if not user:
        raise BadRequestError("Invalid or expired token.")
    return {"email": user["email"]}


async def reset_password(token: str, password: str) -> Dict[str, str]:
    """
    Sets a new password from a reset link and activates the account.
    """
    user = await find_user_by_reset_token(token)
    if not user:
        raise BadRequestError("Invalid or expired token.")

    with LogContext(email=user["email"]):
        await user_service.patch_user(
            user,
            {"password": hash_password(password), "accountStatus": "active"},
            unset=["resetToken", "resetTokenExpiry"]
        )
        logger.info("Password reset")

        result = await email_service.send_password_changed(user["email"], user.get("name"))
        if not result.get("success"):
            logger.error(f"Password change confirmation failed: {result.get('error')}")

    return {"message": "Password reset! You can now log in."}


async def change_password(email: str, current_password: str, new_password: str) -> Dict[str, bool]:
    """
    Changes the password of a signed-in user after checking the current one.

    Raises:
        BadRequestError: Current password is incorrect
    """
    user = await user_service.require_user(email)

    if not verify_password(current_password, user.get("password")):
        raise BadRequestError("Current password is incorrect")

    await user_service.patch_user(user, {"password": hash_password(new_password)})
    logger.info("Password changed", extra={"email": email})
    return {"success": True}
