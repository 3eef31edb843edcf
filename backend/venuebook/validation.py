from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal
from venuebook.money_utils import to_money, HUNDRED, MAX_AMOUNT
from venuebook.time_utils import parse_iso_datetime, parse_iso_date

from dataclasses import dataclass, fields, MISSING
from types import UnionType
from typing import Any, Union, get_args, get_origin, get_type_hints

from sqlalchemy import Boolean, Integer, String, Text, DateTime, Date, Numeric, JSON
from sqlalchemy.orm import DeclarativeMeta


ROLE_DISCOUNT_TYPES = {"percentage", "fixed", "free"}
CALENDAR_DISCOUNT_TYPES = {"percentage", "fixed"}
CALENDAR_TYPES = {"holiday", "weekend", "special", "promotion"}


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., re-confirming a payment)."""


class NotFoundError(LookupError):
    """404-level missing record; no side effect occurred."""


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

    # Money / decimals - reject booleans and garbage, normalize to 2 places
    if isinstance(coltype, Numeric) and not isinstance(coltype, Integer):
        try:
            return to_money(value)
        except ValueError:
            raise ValidationError(f"{col.key} must be a number")

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{col.key} must be a plain integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

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

    # Calendar dates
    if isinstance(coltype, Date):
        try:
            d = parse_iso_date(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{col.key} must be an ISO-8601 date")
        if d is None:
            raise ValidationError(f"{col.key} must be an ISO-8601 date")
        return d

    # Store-id lists
    if isinstance(coltype, JSON):
        return value

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
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

        # NULL handling
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


def _check_discount_value(discount_type: str | None, value: Decimal | None) -> None:
    if value is None:
        return
    if value < 0:
        raise ValidationError("discount_value must be >= 0")
    if value > MAX_AMOUNT:
        raise ValidationError("discount_value is too large")
    if discount_type == "percentage" and value > HUNDRED:
        raise ValidationError("percentage discount_value cannot exceed 100")


def enforce_rules_role_template(patch: dict, existing=None) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    `existing` supplies current values for partial updates.
    """
    discount_type = patch.get("discount_type", getattr(existing, "discount_type", None))
    if discount_type not in ROLE_DISCOUNT_TYPES:
        raise ValidationError(f"discount_type must be one of {sorted(ROLE_DISCOUNT_TYPES)}")

    discount_value = patch.get("discount_value", getattr(existing, "discount_value", None))
    _check_discount_value(discount_type, discount_value)

    valid_from = patch.get("valid_from", getattr(existing, "valid_from", None))
    valid_to = patch.get("valid_to", getattr(existing, "valid_to", None))
    if valid_from and valid_to and valid_from > valid_to:
        raise ValidationError("valid_from must be on or before valid_to")

    _check_store_ids(patch)


def enforce_rules_calendar_entry(patch: dict, existing=None) -> None:
    discount_type = patch.get("discount_type", getattr(existing, "discount_type", None))
    if discount_type not in CALENDAR_DISCOUNT_TYPES:
        raise ValidationError(f"discount_type must be one of {sorted(CALENDAR_DISCOUNT_TYPES)}")

    calendar_type = patch.get("calendar_type", getattr(existing, "calendar_type", None))
    if calendar_type not in CALENDAR_TYPES:
        raise ValidationError(f"calendar_type must be one of {sorted(CALENDAR_TYPES)}")

    discount_value = patch.get("discount_value", getattr(existing, "discount_value", None))
    _check_discount_value(discount_type, discount_value)

    _check_store_ids(patch)


def _check_store_ids(patch: dict) -> None:
    if "store_ids" not in patch or patch["store_ids"] is None:
        return
    store_ids = patch["store_ids"]
    if not isinstance(store_ids, list):
        raise ValidationError("store_ids must be a list of store ids")
    for sid in store_ids:
        if not isinstance(sid, int) or isinstance(sid, bool):
            raise ValidationError("store_ids must contain integers")
    patch["store_ids"] = sorted(set(store_ids))


# =============================================================================
# COMMAND PARSING
# =============================================================================

def parse_command(command_cls, payload: dict | None):
    """
    Build a frozen command dataclass from a JSON body.

    Unknown keys are rejected rather than silently merged; fields without a
    default are required. Values are coerced by annotation: Decimal via
    to_money, int strictly, date via ISO parsing, tuple[int, ...] from
    lists of ints.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    spec = {f.name: f for f in fields(command_cls)}
    unknown = sorted(k for k in payload if k not in spec)
    if unknown:
        raise ValidationError(f"Unknown field: {', '.join(unknown)}")

    hints = get_type_hints(command_cls)
    kwargs = {}
    for name, f in spec.items():
        if name not in payload:
            if f.default is MISSING and f.default_factory is MISSING:
                raise ValidationError(f"Missing required field: {name}")
            continue
        kwargs[name] = _coerce_command_value(name, hints[name], payload[name])

    return command_cls(**kwargs)


def _unwrap_optional(hint) -> tuple[Any, bool]:
    """Strip None out of `X | None` / Optional[X]; returns (X, optional)."""
    if get_origin(hint) in (Union, UnionType):
        args = [a for a in get_args(hint) if a is not type(None)]
        optional = len(args) < len(get_args(hint))
        if len(args) == 1:
            return args[0], optional
        return Union[tuple(args)], optional
    return hint, False


def _coerce_command_value(name: str, hint, value):
    hint, optional = _unwrap_optional(hint)

    if value is None:
        if optional:
            return None
        raise ValidationError(f"{name} cannot be null")

    if hint is Decimal:
        try:
            return to_money(value)
        except ValueError:
            raise ValidationError(f"{name} must be a number")

    if get_origin(hint) is tuple:
        if not isinstance(value, (list, tuple)):
            raise ValidationError(f"{name} must be a list")
        item_type = get_args(hint)[0] if get_args(hint) else Any
        if item_type is int:
            for v in value:
                if not isinstance(v, int) or isinstance(v, bool):
                    raise ValidationError(f"{name} must contain integers")
            return tuple(value)
        return tuple(str(v) for v in value)

    if hint is datetime:
        try:
            return parse_iso_datetime(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be an ISO-8601 datetime")

    if hint is date:
        try:
            d = parse_iso_date(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be an ISO-8601 date")
        if d is None and not optional:
            raise ValidationError(f"{name} is required")
        return d

    # bool before int: bool is an int subclass
    if hint is bool:
        if not isinstance(value, bool):
            raise ValidationError(f"{name} must be true or false")
        return value

    if hint is int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(f"{name} must be an integer")
        return value

    if hint is str:
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValidationError(f"{name} must be a string")
        return str(value).strip()

    return value
