"""
storefront/api/auth.py

Purpose: Authentication endpoints

- Password login
- Account existence check
- Account activation
- Forgot / reset password

Responses for forgot-password and check-user stay generic so they do not
reveal more than the caller is entitled to.
"""

from fastapi import APIRouter
from typing import Optional

from storefront.core.exceptions import BadRequestError, StorefrontError
from storefront.core.logging import get_logger
from storefront.schemas.auth import (
    LoginRequest,
    TokenResponse,
    EmailRequest,
    ActivateAccountRequest,
    ResetPasswordRequest,
    MessageResponse,
    UserStatusResponse,
)
from storefront.services import auth_service

logger = get_logger(__name__)
router = APIRouter()


@router.post("/auth/login", response_model=TokenResponse)
async def login(body: LoginRequest):
    if not body.email or not body.password:
        raise BadRequestError("Email and password are required")

    try:
        return await auth_service.login(body.email, body.password)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}", exc_info=True)
        raise StorefrontError("Failed to sign in")


@router.get("/check-user", response_model=UserStatusResponse)
async def check_user(email: Optional[str] = None):
    if not email:
        raise BadRequestError("Email is required")

    try:
        return await auth_service.check_user(email)
    except Exception as e:
        logger.error(f"Error checking user: {e}", exc_info=True)
        raise StorefrontError("Failed to check user status")


@router.post("/activate-account")
async def activate_account(body: ActivateAccountRequest):
    if not body.email or not body.password:
        raise BadRequestError("Email and password are required")

    try:
        return await auth_service.activate_account(body.email, body.password)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error during account activation: {e}", exc_info=True)
        raise StorefrontError("Failed to activate account. Please try again.")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(body: EmailRequest):
    """
    Sends a reset link when the account exists. Same response either way.
    """
    if not body.email:
        raise BadRequestError("Missing email.")

    try:
        return await auth_service.forgot_password(body.email)
    except Exception as e:
        logger.error(f"Error handling password reset request: {e}", exc_info=True)
        raise StorefrontError("Failed to process request")


@router.get("/reset-password")
async def verify_reset_token(token: Optional[str] = None):
    if not token:
        raise BadRequestError("Missing token.")

    try:
        return await auth_service.verify_reset_token(token)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error verifying reset token: {e}", exc_info=True)
        raise StorefrontError("Failed to verify token")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(body: ResetPasswordRequest):
    if not body.token or not body.password:
        raise BadRequestError("Missing token or password.")

    try:
        return await auth_service.reset_password(body.token, body.password)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error resetting password: {e}", exc_info=True)
        raise StorefrontError("Failed to reset password")
