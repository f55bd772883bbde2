"""
storefront/db/mongo.py

Purpose: MongoDB connection setup (content/document store)

- Initializes Motor client with connection pooling
- One collection per document type (users, orders, products, ...)
- GridFS bucket for uploaded image assets
- Health checks and retry logic
- Proper connection lifecycle management
"""

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorDatabase,
    AsyncIOMotorGridFSBucket,
)
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from bson import ObjectId
from typing import Optional, Any
import asyncio
import uuid
from storefront.core.config import settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)

# Global MongoDB client
_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None

USERS = "users"
ORDERS = "orders"
CART_STATES = "cart_states"
CATEGORIES = "categories"
COLLECTIONS = "collections"
PRODUCTS = "products"
PAGE_CACHE = "page_cache"
ASSETS_BUCKET = "assets"


async def connect_to_mongo():
    """
    Establishes connection to MongoDB with retry logic.
    Called during application startup.
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    max_retries = 3
    retry_delay = 2

    for attempt in range(1, max_retries + 1):
        try:
            logger.info(
                f"Attempting to connect to MongoDB (attempt {attempt}/{max_retries})"
            )

            _client = AsyncIOMotorClient(
                settings.MONGODB_URL,
                maxPoolSize=50,
                minPoolSize=5,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000,
                retryWrites=True,
                retryReads=True,
            )

            _database = _client[settings.MONGODB_DB_NAME]

            # Verify connection
            await _client.admin.command("ping")

            logger.info(
                f"Successfully connected to MongoDB: {settings.MONGODB_DB_NAME}"
            )
            return

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(
                f"Failed to connect to MongoDB (attempt {attempt}/{max_retries}): {e}"
            )
            _client = None
            _database = None

            if attempt < max_retries:
                logger.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay *= 2  # Exponential backoff
            else:
                logger.critical("Failed to connect to MongoDB after all retries")
                raise ConnectionError("Could not establish MongoDB connection") from e


async def close_mongo_connection():
    """
    Closes the MongoDB connection.
    Called during application shutdown.
    """
    global _client, _database

    if _client:
        logger.info("Closing MongoDB connection")
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """
    Checks if the database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        if _client is None:
            logger.error("MongoDB client not initialized")
            return False

        await _client.admin.command("ping")
        return True

    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


def use_database(database: Optional[AsyncIOMotorDatabase]):
    """
    Points the module at an already constructed database.
    Used by maintenance scripts and tests that manage their own client.
    """
    global _database
    _database = database


def get_database() -> AsyncIOMotorDatabase:
    """
    Returns the MongoDB database instance.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _database is None:
        raise RuntimeError(
            "Database not initialized. Call connect_to_mongo() during startup."
        )
    return _database


def get_collection(name: str):
    """Returns a collection of the content store by name."""
    return get_database()[name]


def get_users_collection():
    """
    Returns the users collection.

    Fields:
    - email: str (unique)
    - password: str (bcrypt hash, optional)
    - name: str
    - image: str (avatar URL)
    - accountStatus: str
    - shippingAddresses: list[dict] (ordered)
    - resetToken / resetTokenExpiry: str
    - _rev: str (revision token for compare-and-swap patches)
    """
    return get_collection(USERS)


def get_orders_collection():
    """Returns the orders collection."""
    return get_collection(ORDERS)


def get_cart_states_collection():
    """Returns the cart state collection."""
    return get_collection(CART_STATES)


def get_assets_bucket() -> AsyncIOMotorGridFSBucket:
    """Returns the GridFS bucket holding uploaded image assets."""
    return AsyncIOMotorGridFSBucket(get_database(), bucket_name=ASSETS_BUCKET)


def new_document_id() -> str:
    """Identifier for documents created by this service."""
    return uuid.uuid4().hex


def serialize_document(value: Any) -> Any:
    """
    Makes a document JSON friendly.
    Documents created outside this service may carry ObjectId keys.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: serialize_document(item) for key, item in value.items()}
    if isinstance(value, list):
        return [serialize_document(item) for item in value]
    return value
