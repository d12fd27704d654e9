from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .time_utils import parse_iso_datetime


# Maximum price: 99,99,999.99 in minor units
MAX_PRICE_CENTS = 999_999_999

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# field -> (minimum length, message); mirrors the checkout form rules
CHECKOUT_FIELD_RULES = {
    "customer_name": (2, "Name must be at least 2 characters"),
    "customer_phone": (10, "Phone number must be at least 10 digits"),
    "shipping_address": (10, "Address must be at least 10 characters"),
    "shipping_city": (2, "City is required"),
    "shipping_state": (2, "State is required"),
    "shipping_postal_code": (5, "Postal code must be at least 5 characters"),
}

REGISTRATION_FIELD_RULES = {
    "full_name": (2, "Name must be at least 2 characters"),
    "phone": (10, "Phone number must be at least 10 digits"),
    "password": (6, "Password must be at least 6 characters"),
}


class ValidationError(ValueError):
    """400-level input problem. `errors` carries per-field messages for forms."""

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.errors = errors or {}


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., illegal status transition)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
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
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

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

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_money(field: str, value: int | None, *, allow_negative: bool = False) -> None:
    if value is None:
        return
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if not allow_negative and value < 0:
        raise ValidationError(f"{field} must be >= 0")
    if abs(value) > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_money("base_price_cents", patch.get("base_price_cents"))
    if patch.get("stock_quantity") is not None and patch["stock_quantity"] < 0:
        raise ValidationError("stock_quantity must be >= 0")


def enforce_rules_variant(patch: dict) -> None:
    # Price adjustments may discount a variant, so negatives are allowed
    _check_money("price_adjustment_cents", patch.get("price_adjustment_cents"), allow_negative=True)
    if patch.get("stock_quantity") is not None and patch["stock_quantity"] < 0:
        raise ValidationError("stock_quantity must be >= 0")


def check_sellable_price(base_price_cents: int | None, price_adjustment_cents: int | None) -> None:
    """A variant's adjustment may discount it down to zero, never below."""
    if (base_price_cents or 0) + (price_adjustment_cents or 0) < 0:
        raise ValidationError("base_price_cents + price_adjustment_cents must be >= 0")


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_RE.match(value.strip()))


def _min_length_errors(data: dict, rules: dict[str, tuple[int, str]]) -> dict[str, str]:
    errors: dict[str, str] = {}
    for field, (min_len, message) in rules.items():
        value = data.get(field)
        if not isinstance(value, str) or len(value.strip()) < min_len:
            errors[field] = message
    return errors


def validate_checkout_form(form: dict | None) -> dict:
    """
    Validate the shipping/contact form submitted at checkout.

    Returns a cleaned copy (strings stripped). Raises ValidationError whose
    `errors` maps each failing field to its form message.
    """
    form = form or {}
    errors = _min_length_errors(form, CHECKOUT_FIELD_RULES)
    if not is_valid_email(form.get("customer_email")):
        errors["customer_email"] = "Please enter a valid email"
    if errors:
        raise ValidationError("Invalid checkout details", errors=errors)

    fields = list(CHECKOUT_FIELD_RULES) + ["customer_email"]
    return {field: form[field].strip() for field in fields}


def validate_registration(data: dict | None) -> dict:
    data = data or {}
    errors = _min_length_errors(data, REGISTRATION_FIELD_RULES)
    if not is_valid_email(data.get("email")):
        errors["email"] = "Please enter a valid email"
    confirm = data.get("confirm_password")
    if confirm is not None and confirm != data.get("password"):
        errors["confirm_password"] = "Passwords don't match"
    if errors:
        raise ValidationError("Invalid registration details", errors=errors)
    return {
        "email": data["email"].strip().lower(),
        "password": data["password"],
        "full_name": data["full_name"].strip(),
        "phone": data["phone"].strip(),
    }
