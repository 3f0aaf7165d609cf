from __future__ import annotations
from datetime import datetime
from .time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Float, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .models import ADDRESS_TYPES, UPLOAD_TYPES


DELETE_MODES = ("restrict", "cascade", "reparent_children")


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def policy_for(model) -> ModelValidationPolicy:
    """Policy derived from a model's MUTABLE_FIELDS / REQUIRED_FIELDS."""
    return ModelValidationPolicy(
        writable_fields=set(model.MUTABLE_FIELDS),
        required_on_create=set(getattr(model, "REQUIRED_FIELDS", set())),
    )


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

    # Floats (coordinates)
    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise ValidationError(f"{col.key} must be a number")
        raise ValidationError(f"{col.key} must be a number")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
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

    # Strings / Text
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

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_media(kind: str, patch: dict) -> None:
    """File metadata rules not captured by column metadata."""
    if "size" in patch and patch["size"] is not None and patch["size"] < 0:
        raise ValidationError("size must be >= 0")

    if kind == "image" and patch.get("image_type") is not None:
        image_type = patch["image_type"].upper()
        if image_type not in UPLOAD_TYPES:
            raise ValidationError(f"image_type must be one of: {', '.join(UPLOAD_TYPES)}")
        patch["image_type"] = image_type


def enforce_rules_address(patch: dict) -> None:
    lat = patch.get("latitude")
    if lat is not None and not -90.0 <= lat <= 90.0:
        raise ValidationError("latitude must be between -90 and 90")

    lng = patch.get("longitude")
    if lng is not None and not -180.0 <= lng <= 180.0:
        raise ValidationError("longitude must be between -180 and 180")

    if patch.get("address_type") is not None:
        address_type = patch["address_type"].upper()
        if address_type not in ADDRESS_TYPES:
            raise ValidationError(f"address_type must be one of: {', '.join(ADDRESS_TYPES)}")
        patch["address_type"] = address_type


def enforce_rules_email(patch: dict) -> None:
    email = patch.get("email_address")
    if email is not None and ("@" not in email or email.startswith("@") or email.endswith("@")):
        raise ValidationError("email_address must look like name@domain")


def enforce_rules_metadata(patch: dict) -> None:
    if "name" in patch:
        name = (patch["name"] or "").strip()
        if not name:
            raise ValidationError("name must not be blank")
        patch["name"] = name


def enforce_rules_attachment(patch: dict) -> None:
    order = patch.get("order")
    if order is not None:
        if isinstance(order, bool) or not isinstance(order, int):
            raise ValidationError("order must be an integer")
        if order < 0:
            raise ValidationError("order must be >= 0")


def enforce_delete_mode(mode: str | None) -> str:
    mode = (mode or "restrict").strip().lower()
    if mode not in DELETE_MODES:
        raise ValidationError(f"mode must be one of: {', '.join(DELETE_MODES)}")
    return mode


SUB_RECORD_RULES = {
    "address": enforce_rules_address,
    "email_address": enforce_rules_email,
    "metadata": enforce_rules_metadata,
}


def enforce_rules_sub_record(kind: str, patch: dict) -> None:
    rule = SUB_RECORD_RULES.get(kind)
    if rule is not None:
        rule(patch)
