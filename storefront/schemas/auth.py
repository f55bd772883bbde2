"""
storefront/schemas/auth.py

Purpose: Authentication payloads

- Login and token responses
- Account activation and password reset bodies
"""

from pydantic import BaseModel
from typing import Optional


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class EmailRequest(BaseModel):
    email: Optional[str] = None


class ActivateAccountRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class UserStatusResponse(BaseModel):
    exists: bool
    hasPassword: bool
