"""
storefront/utils/validation_utils.py

Purpose: Input validation

- Email format checks
- Shipping address validation and normalisation
- Sort expression parsing for product listings
- Input sanitization
"""

import re
from typing import Any, Dict, Optional, Tuple

from storefront.core.exceptions import BadRequestError

REQUIRED_ADDRESS_FIELDS = ("name", "line1", "city", "state", "postalCode", "country")
ADDRESS_IDENTITY_FIELDS = REQUIRED_ADDRESS_FIELDS

SORTABLE_PRODUCT_FIELDS = {"createdAt", "name", "price", "rating", "stock", "_createdAt"}

_ZERO_WIDTH = re.compile(r"[\u200B-\u200D\uFEFF]")


def validate_email_format(email: Any) -> bool:
    """
    Loose email check: a string containing '@'.
    Deliverability is the email provider's concern.
    """
    return isinstance(email, str) and "@" in email


def clean_text(value: Any) -> Any:
    """
    Strips zero-width characters and surrounding whitespace from strings.
    Non-strings pass through untouched.
    """
    if isinstance(value, str):
        return _ZERO_WIDTH.sub("", value).strip()
    return value


def validate_address(address: Any) -> Dict[str, Any]:
    """
    Validates a shipping address for storage.

    Raises:
        BadRequestError: naming the first missing or blank required field
    """
    for field in REQUIRED_ADDRESS_FIELDS:
        value = address.get(field) if isinstance(address, dict) else None
        if not isinstance(value, str) or value.strip() == "":
            raise BadRequestError(f"Missing or invalid address field: {field}")

    normalized = dict(address)
    if not isinstance(normalized.get("line2"), str):
        normalized["line2"] = ""
    return normalized


def same_address(a: Dict[str, Any], b: Dict[str, Any]) -> bool:
    """Two addresses are the same when every identity field matches."""
    return all(a.get(field) == b.get(field) for field in ADDRESS_IDENTITY_FIELDS)


def map_checkout_address(address: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Maps a checkout form address (fullName/address1/zipCode) or a stored
    address (name/line1/postalCode) to the stored shape.
    """
    if not address:
        return None
    return {
        "name": clean_text(address.get("fullName") or address.get("name")),
        "line1": clean_text(address.get("address1") or address.get("line1")),
        "line2": clean_text(address.get("address2") or address.get("line2")),
        "city": clean_text(address.get("city")),
        "state": clean_text(address.get("state")),
        "postalCode": clean_text(address.get("zipCode") or address.get("postalCode")),
        "country": clean_text(address.get("country") or "US"),
    }


def parse_sort(sort: Optional[str], default: str = "createdAt desc") -> Tuple[str, int]:
    """
    Parses "<field> asc|desc" into a (field, direction) pair for pymongo.

    Raises:
        BadRequestError: for unknown fields or directions
    """
    parts = (sort or default).split()
    field = parts[0] if parts else "createdAt"
    direction = parts[1].lower() if len(parts) > 1 else "asc"

    if field not in SORTABLE_PRODUCT_FIELDS:
        raise BadRequestError(f"Unsupported sort field: {field}")
    if direction not in ("asc", "desc"):
        raise BadRequestError(f"Unsupported sort direction: {direction}")

    return field, (1 if direction == "asc" else -1)


def payment_intent_id_from_secret(client_secret: str) -> str:
    """A client secret has the form '<intent id>_secret_<random>'."""
    return client_secret.split("_secret_")[0]
