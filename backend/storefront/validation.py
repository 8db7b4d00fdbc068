"""
Request payload validation.

Rejects malformed input before it reaches the services and normalizes what is
accepted: strings trimmed, integers strict, money parsed as Decimal, datetimes
normalized to UTC-naive. Domain invariants that depend on live state
(inventory, promo windows, usage) are re-checked by the services themselves.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError
from .money import PROMO_TYPE_PERCENTAGE, PROMO_TYPES, round2
from .models.orders import SHIPPING_ADDRESS_FIELDS
from .time_utils import parse_iso_datetime

# Maximum price: $9,999,999.99
MAX_PRICE = Decimal("9999999.99")

PROMO_CODE_RE = re.compile(r"^[A-Z0-9_-]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
URL_RE = re.compile(r"^https?://\S+$")
GUEST_TOKEN_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


@dataclass(frozen=True)
class StringRule:
    max_length: int
    min_length: int = 1


def _error(field: str, message: str) -> ValidationError:
    return ValidationError("Validation Error", details=[{"field": field, "message": message}])


def require_fields(payload: dict, fields) -> None:
    missing = [f for f in fields if f not in payload or payload[f] is None]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details=[{"field": f, "message": "is required"} for f in missing],
        )


def coerce_string(field: str, value: Any, rule: StringRule) -> str:
    if not isinstance(value, str):
        raise _error(field, "must be a string")
    stripped = value.strip()
    if len(stripped) < rule.min_length:
        raise _error(field, "must not be empty")
    if len(stripped) > rule.max_length:
        raise _error(field, f"must be at most {rule.max_length} characters")
    return stripped


def coerce_int(field: str, value: Any, *, minimum: int | None = None, maximum: int | None = None) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise _error(field, "must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise _error(field, "must be a plain integer")
        try:
            result = int(stripped)
        except ValueError:
            raise _error(field, "must be an integer")
    else:
        raise _error(field, "must be an integer")

    if minimum is not None and result < minimum:
        raise _error(field, f"must be at least {minimum}")
    if maximum is not None and result > maximum:
        raise _error(field, f"must be at most {maximum}")
    return result


def coerce_amount(field: str, value: Any, *, maximum: Decimal = MAX_PRICE) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise _error(field, "must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise _error(field, "must be a number")
    if not amount.is_finite():
        raise _error(field, "must be a finite number")
    if amount < 0:
        raise _error(field, "must be non-negative")
    if amount > maximum:
        raise _error(field, f"must be at most {maximum}")
    return round2(amount)


def coerce_bool(field: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise _error(field, "must be a boolean")


def coerce_datetime(field: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise _error(field, "must be an ISO-8601 datetime")
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise _error(field, "must be an ISO-8601 datetime")
    if dt is None:
        raise _error(field, "must be an ISO-8601 datetime")
    return dt


def _validate_attributes(field: str, value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise _error(field, "must be an object of string values")
    attributes = {}
    for key, attr_value in value.items():
        if not isinstance(key, str) or not isinstance(attr_value, str):
            raise _error(field, "keys and values must be strings")
        attributes[key] = attr_value
    return attributes


def _validate_variant(index: int, raw: Any) -> dict:
    prefix = f"variants.{index}"
    if not isinstance(raw, dict):
        raise _error(prefix, "must be an object")
    require_fields(raw, ("id", "name", "price", "sku", "inventory"))
    return {
        "variant_key": coerce_string(f"{prefix}.id", raw["id"], StringRule(100)),
        "name": coerce_string(f"{prefix}.name", raw["name"], StringRule(200)),
        "price": coerce_amount(f"{prefix}.price", raw["price"]),
        "sku": coerce_string(f"{prefix}.sku", raw["sku"], StringRule(64)),
        "inventory": coerce_int(f"{prefix}.inventory", raw["inventory"], minimum=0),
        "attributes": _validate_attributes(f"{prefix}.attributes", raw.get("attributes")),
    }


def validate_variants(raw: Any) -> list[dict]:
    if not isinstance(raw, list) or not raw:
        raise _error("variants", "at least one variant is required")
    variants = [_validate_variant(i, v) for i, v in enumerate(raw)]

    keys = [v["variant_key"] for v in variants]
    if len(set(keys)) != len(keys):
        raise _error("variants", "variant ids must be unique within a product")
    skus = [v["sku"] for v in variants]
    if len(set(skus)) != len(skus):
        raise _error("variants", "variant SKUs must be unique")
    return variants


def validate_product_payload(payload: dict, *, partial: bool) -> dict:
    """Returns a cleaned patch; partial=False enforces create semantics."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    if not partial:
        require_fields(payload, ("name", "description", "category", "base_price", "variants"))

    patch: dict = {}
    if "name" in payload:
        patch["name"] = coerce_string("name", payload["name"], StringRule(200))
    if "description" in payload:
        patch["description"] = coerce_string("description", payload["description"], StringRule(2000))
    if "category" in payload:
        patch["category"] = coerce_string("category", payload["category"], StringRule(100))
    if "base_price" in payload:
        patch["base_price"] = coerce_amount("base_price", payload["base_price"])
    if "variants" in payload:
        patch["variants"] = validate_variants(payload["variants"])
    if "images" in payload:
        images = payload["images"] or []
        if not isinstance(images, list) or not all(isinstance(i, str) and URL_RE.match(i) for i in images):
            raise _error("images", "must be a list of URLs")
        patch["images"] = images
    elif not partial:
        patch["images"] = []
    if "is_active" in payload:
        patch["is_active"] = coerce_bool("is_active", payload["is_active"])
    return patch


def validate_promo_payload(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    require_fields(payload, ("code", "name", "type", "value", "valid_from", "valid_until"))

    code = coerce_string("code", payload["code"], StringRule(50)).upper()
    if not PROMO_CODE_RE.match(code):
        raise _error("code", "may only contain letters, numbers, underscores and hyphens")

    promo_type = payload["type"]
    if promo_type not in PROMO_TYPES:
        raise _error("type", f"must be one of: {', '.join(PROMO_TYPES)}")

    value = coerce_amount("value", payload["value"])
    if promo_type == PROMO_TYPE_PERCENTAGE and value > 100:
        raise _error("value", "Percentage discount cannot exceed 100%")

    valid_from = coerce_datetime("valid_from", payload["valid_from"])
    valid_until = coerce_datetime("valid_until", payload["valid_until"])
    if valid_from >= valid_until:
        raise _error("valid_until", "Valid from date must be before valid until date")

    cleaned = {
        "code": code,
        "name": coerce_string("name", payload["name"], StringRule(200)),
        "type": promo_type,
        "value": value,
        "valid_from": valid_from,
        "valid_until": valid_until,
        "minimum_order_amount": None,
        "max_discount_amount": None,
        "usage_limit": None,
        "is_active": True,
    }
    if payload.get("minimum_order_amount") is not None:
        cleaned["minimum_order_amount"] = coerce_amount("minimum_order_amount", payload["minimum_order_amount"])
    if payload.get("max_discount_amount") is not None:
        cleaned["max_discount_amount"] = coerce_amount("max_discount_amount", payload["max_discount_amount"])
    if payload.get("usage_limit") is not None:
        cleaned["usage_limit"] = coerce_int("usage_limit", payload["usage_limit"], minimum=1)
    if "is_active" in payload:
        cleaned["is_active"] = coerce_bool("is_active", payload["is_active"])
    return cleaned


def validate_guest_token(token: str) -> str:
    if not isinstance(token, str) or not GUEST_TOKEN_RE.match(token):
        raise _error("guest_token", "Invalid guest token format")
    return token


def validate_cart_item_payload(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    require_fields(payload, ("product_id", "variant_id", "quantity"))
    return {
        "product_id": coerce_int("product_id", payload["product_id"], minimum=1),
        "variant_id": coerce_string("variant_id", payload["variant_id"], StringRule(100)),
        "quantity": coerce_int("quantity", payload["quantity"], minimum=1),
    }


def validate_quantity_payload(payload: dict) -> int:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    require_fields(payload, ("quantity",))
    return coerce_int("quantity", payload["quantity"], minimum=1)


def validate_promo_code_payload(payload: dict) -> str:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    require_fields(payload, ("promo_code",))
    return coerce_string("promo_code", payload["promo_code"], StringRule(50))


SHIPPING_RULES = {
    "first_name": StringRule(100),
    "last_name": StringRule(100),
    "email": StringRule(200),
    "phone": StringRule(20, min_length=10),
    "address": StringRule(500),
    "city": StringRule(100),
    "state": StringRule(100),
    "zip_code": StringRule(20),
    "country": StringRule(100),
}


def validate_shipping_address(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    require_fields(payload, ("shipping_address",))
    raw = payload["shipping_address"]
    if not isinstance(raw, dict):
        raise _error("shipping_address", "must be an object")
    require_fields(raw, SHIPPING_ADDRESS_FIELDS)

    address = {
        field: coerce_string(f"shipping_address.{field}", raw[field], SHIPPING_RULES[field])
        for field in SHIPPING_ADDRESS_FIELDS
    }
    address["email"] = address["email"].lower()
    if not EMAIL_RE.match(address["email"]):
        raise _error("shipping_address.email", "Invalid email format")
    return address


def parse_pagination(args, *, default_limit: int, max_limit: int) -> tuple[int, int]:
    page = coerce_int("page", args.get("page", "1"), minimum=1)
    limit = coerce_int("limit", args.get("limit", str(default_limit)), minimum=1, maximum=max_limit)
    return page, limit


def parse_optional_amount(args, field: str) -> Decimal | None:
    raw = args.get(field)
    if raw is None or raw == "":
        return None
    return coerce_amount(field, raw)
