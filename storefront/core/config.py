"""
storefront/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, Stripe keys, secrets, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB (content/document store)
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="storefront",
        description="MongoDB database name"
    )

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = Field(
        default=None,
        description="Stripe secret API key"
    )
    STRIPE_WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Signing secret for Stripe webhook events"
    )
    PAYMENT_CURRENCY: str = Field(
        default="usd",
        description="Currency used for new payment intents"
    )

    # Transactional email
    EMAIL_API_URL: str = Field(
        default="https://api.resend.com/emails",
        description="HTTP endpoint of the transactional email provider"
    )
    EMAIL_API_KEY: Optional[str] = Field(
        default=None,
        description="API key for the transactional email provider"
    )
    EMAIL_FROM: str = Field(
        default="no-reply@example.com",
        description="Sender address for outgoing email"
    )

    # Public URLs
    BASE_URL: str = Field(
        default="http://localhost:3001",
        description="Storefront base URL (used in password reset links)"
    )
    ASSET_BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Base URL under which /assets/images/* is served"
    )

    # Auth
    SECRET_KEY: str = Field(
        default="change-me-in-production",
        description="Secret key used to sign access tokens"
    )
    JWT_ALGORITHM: str = Field(
        default="HS256",
        description="Access token signing algorithm"
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=60 * 24,
        description="Access token lifetime in minutes"
    )
    PASSWORD_RESET_TOKEN_HOURS: int = Field(
        default=1,
        description="Password reset link validity in hours"
    )
    BCRYPT_ROUNDS: int = Field(
        default=10,
        description="bcrypt cost factor for password hashes"
    )

    # Caching
    REVALIDATE_SECRET_TOKEN: Optional[str] = Field(
        default=None,
        description="Shared secret required by the revalidation endpoint"
    )
    CONTENT_CACHE_SECONDS: int = Field(
        default=300,
        description="How long content listings stay in the page cache"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("SECRET_KEY")
    def validate_secret_key(cls, v, values):
        """Ensure secret key is changed in production."""
        if values.get("ENVIRONMENT") == "production" and v == "change-me-in-production":
            raise ValueError("SECRET_KEY must be changed in production environment")
        return v

    @validator("STRIPE_SECRET_KEY")
    def validate_stripe_key(cls, v, values):
        """Ensure Stripe key is set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("STRIPE_SECRET_KEY is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.MONGODB_DB_NAME:
        errors.append("MONGODB_DB_NAME is required")

    # Production-specific validations
    if settings.is_production:
        if not settings.STRIPE_SECRET_KEY:
            errors.append("STRIPE_SECRET_KEY is required in production")
        if not settings.STRIPE_WEBHOOK_SECRET:
            errors.append("STRIPE_WEBHOOK_SECRET is required in production")
        if not settings.EMAIL_API_KEY:
            errors.append("EMAIL_API_KEY is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
