from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# Largest value a 64-bit signed INTEGER column can hold
MAX_INT = 2**63 - 1

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\d{10}$")


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level: referenced entity does not exist (or is no longer active)."""


class InvalidQuantityError(ValidationError):
    """Sale quantity is not a positive integer."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _check_int_range(key: str, value: int) -> int:
    if not -MAX_INT <= value <= MAX_INT:
        raise ValidationError(f"{key} is out of range")
    return value


def coerce_int(key: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats, decimals, scientific notation and out-of-range values."""
    if isinstance(value, int) and not isinstance(value, bool):
        return _check_int_range(key, value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            parsed = int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
        return _check_int_range(key, parsed)
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_stock_item(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price_cents" in patch:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")

    if "quantity" in patch and patch["quantity"] < 0:
        raise ValidationError("quantity must be >= 0")

    if "reorder_threshold" in patch and patch["reorder_threshold"] < 0:
        raise ValidationError("reorder_threshold must be >= 0")


def require_positive_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError("quantity must be a positive integer")
    if quantity < 1:
        raise InvalidQuantityError("quantity must be a positive integer")
    if quantity > MAX_INT:
        raise InvalidQuantityError("quantity is out of range")
    return quantity


def validate_email(email: str) -> str:
    if not EMAIL_RE.match(email):
        raise ValidationError("Please enter a valid email address")
    return email


@dataclass(frozen=True)
class CustomerInfo:
    name: str | None = None
    email: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class SaleRequest:
    item_id: int
    quantity: int
    customer: CustomerInfo | None = None


def _optional_text(data: dict, key: str) -> str | None:
    raw = data.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"customer.{key} must be a string")
    value = raw.strip()
    return value or None


def parse_customer(raw: Any) -> CustomerInfo | None:
    """
    Optional customer sub-record. Each field is independently optional;
    present-but-malformed values reject the whole sale.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("customer must be an object")

    unknown = set(raw) - {"name", "email", "phone"}
    if unknown:
        raise ValidationError(f"Unknown customer field: {sorted(unknown)[0]}")

    name = _optional_text(raw, "name")
    email = _optional_text(raw, "email")
    phone = _optional_text(raw, "phone")

    if name is not None and len(name) > 255:
        raise ValidationError("customer.name exceeds max length 255")
    if email is not None:
        validate_email(email)
    if phone is not None and not PHONE_RE.match(phone):
        raise ValidationError("Phone number must be 10 digits")

    if name is None and email is None and phone is None:
        return None
    return CustomerInfo(name=name, email=email, phone=phone)


def parse_sale_request(payload: Any) -> SaleRequest:
    """Parse a POST /sales body into a SaleRequest."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = set(payload) - {"itemId", "item_id", "quantity", "customer"}
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    raw_item_id = payload.get("item_id", payload.get("itemId"))
    if raw_item_id is None:
        raise ValidationError("item_id and quantity are required")
    if "quantity" not in payload or payload["quantity"] is None:
        raise ValidationError("item_id and quantity are required")

    item_id = coerce_int("item_id", raw_item_id)
    quantity = require_positive_quantity(payload["quantity"])
    customer = parse_customer(payload.get("customer"))

    return SaleRequest(item_id=item_id, quantity=quantity, customer=customer)
