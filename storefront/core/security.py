"""
storefront/core/security.py

Purpose: Credentials and access tokens

- bcrypt password hashing and verification
- Signed bearer tokens (JWT) carrying the user's email
- Random tokens for password reset links
- FastAPI dependencies resolving the signed-in user
"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from storefront.core.config import settings
from storefront.core.exceptions import AuthenticationError

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """Check a plain-text password against a stored bcrypt hash."""
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def generate_reset_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


def create_access_token(email: str, expires_minutes: Optional[int] = None) -> str:
    """
    Create a signed access token for a user.

    Args:
        email: User email, stored as the token subject
        expires_minutes: Optional override for the expiry window

    Returns:
        Encoded JWT string
    """
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    to_encode = {
        "sub": email,
        "exp": expire,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        AuthenticationError: If the signature or expiry check fails
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise AuthenticationError("Invalid token") from exc


async def get_optional_user_email(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Email of the signed-in user, or None for guests and bad tokens."""
    if credentials is None:
        return None
    try:
        payload = decode_access_token(credentials.credentials)
    except AuthenticationError:
        return None
    return payload.get("sub")


async def get_current_user_email(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Email of the signed-in user; 401 when there is no valid session."""
    if credentials is None:
        raise AuthenticationError("Unauthorized")
    payload = decode_access_token(credentials.credentials)
    email = payload.get("sub")
    if not email:
        raise AuthenticationError("Unauthorized")
    return email
