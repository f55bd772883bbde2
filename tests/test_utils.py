import pytest

from storefront.core.exceptions import AuthenticationError, BadRequestError
from storefront.core.security import (
    create_access_token,
    decode_access_token,
    generate_reset_token,
    hash_password,
    verify_password,
)
from storefront.services.image_service import asset_file_name, asset_url, build_image_url
from storefront.services.page_cache_service import normalize_path
from storefront.utils.time_utils import from_unix, timestamp_sort_key, to_iso, parse_iso
from storefront.utils.validation_utils import (
    clean_text,
    map_checkout_address,
    parse_sort,
    payment_intent_id_from_secret,
    validate_address,
)


def test_asset_file_names():
    assert asset_file_name("image-abc123-png") == "abc123.png"
    assert asset_file_name("image-abc123-1200x800-jpg") == "abc123-1200x800.jpg"
    assert asset_file_name("file-abc123-pdf") is None
    assert asset_file_name("image-") is None


def test_build_image_url_sources():
    assert build_image_url(None) is None
    assert build_image_url("https://cdn.example.com/a.png") == "https://cdn.example.com/a.png"
    assert build_image_url("image-abc-png") == asset_url("abc.png")
    assert build_image_url({"asset": {"_ref": "image-abc-png"}}) == asset_url("abc.png")
    assert build_image_url({"asset": {"url": "https://cdn.example.com/b.png"}}) == "https://cdn.example.com/b.png"
    assert build_image_url({"asset": {}}) is None


def test_clean_text_strips_zero_width_and_whitespace():
    assert clean_text("\u200b Jane\ufeff ") == "Jane"
    assert clean_text(None) is None


def test_map_checkout_address_accepts_both_shapes():
    checkout = map_checkout_address({"fullName": "Jane", "address1": "1 Main", "zipCode": "78701",
                                     "city": "Austin", "state": "TX"})
    stored = map_checkout_address({"name": "Jane", "line1": "1 Main", "postalCode": "78701",
                                   "city": "Austin", "state": "TX", "country": "CA"})

    assert checkout["name"] == stored["name"] == "Jane"
    assert checkout["postalCode"] == "78701"
    assert checkout["country"] == "US"
    assert stored["country"] == "CA"
    assert map_checkout_address(None) is None


def test_validate_address_defaults_line2():
    address = {"name": "J", "line1": "1", "city": "A", "state": "TX", "postalCode": "1", "country": "US"}
    assert validate_address(address)["line2"] == ""

    with pytest.raises(BadRequestError) as exc:
        validate_address(dict(address, postalCode=""))
    assert exc.value.message == "Missing or invalid address field: postalCode"

    with pytest.raises(BadRequestError):
        validate_address(None)


def test_parse_sort():
    assert parse_sort(None) == ("createdAt", -1)
    assert parse_sort("price asc") == ("price", 1)
    assert parse_sort("name") == ("name", 1)
    with pytest.raises(BadRequestError):
        parse_sort("price sideways")


def test_payment_intent_id_from_secret():
    assert payment_intent_id_from_secret("pi_123_secret_abc") == "pi_123"


def test_normalize_path():
    assert normalize_path("api/categories/") == "/api/categories"
    assert normalize_path("/") == "/"


def test_timestamps_compare_as_text():
    earlier = to_iso(parse_iso("2024-01-01T00:00:00Z"))
    later = to_iso(parse_iso("2024-01-01T00:00:00.500+00:00"))
    assert earlier < later
    assert timestamp_sort_key(None) == 0.0
    assert timestamp_sort_key("garbage") == 0.0
    assert from_unix(0) == "1970-01-01T00:00:00.000+00:00"


def test_password_hashing():
    hashed = hash_password("hunter22")
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)
    assert not verify_password("hunter22", "not-a-hash")
    assert not verify_password("hunter22", None)


def test_access_tokens():
    token = create_access_token("jane@example.com")
    assert decode_access_token(token)["sub"] == "jane@example.com"

    expired = create_access_token("jane@example.com", expires_minutes=-1)
    with pytest.raises(AuthenticationError):
        decode_access_token(expired)

    with pytest.raises(AuthenticationError):
        decode_access_token(token + "tampered")


def test_reset_tokens_are_random_hex():
    first, second = generate_reset_token(), generate_reset_token()
    assert len(first) == 64
    assert first != second
    int(first, 16)
