from __future__ import annotations
from datetime import date, datetime

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import to_decimal
from .time_utils import parse_iso_date, parse_iso_datetime


# Maximum price: 9,999,999.99
# This prevents database overflow issues and nonsensical prices
MAX_PRICE = Decimal("9999999.99")

PAYMENT_METHODS = {
    "cash": "Cash",
    "gcash": "Gcash",
    "maya": "Maya",
}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: storage column names clients may set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_name(model: DeclarativeMeta) -> dict[str, tuple[str, Any]]:
    """Map storage column name (e.g. "ProductID") -> (attribute key, Column)."""
    mapper = model.__mapper__
    return {col.name: (attr_key, col) for attr_key, col in mapper.columns.items()}


def _coerce_value(name: str, col, value: Any):
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
                raise ValidationError(f"{name} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{name} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{name} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{name} must be an integer, not a decimal")
        raise ValidationError(f"{name} must be an integer")

    if isinstance(coltype, Numeric):
        try:
            return to_decimal(value)
        except ValueError:
            raise ValidationError(f"{name} must be a number")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{name} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{name} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{name} must be a datetime")

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{name} must be an ISO-8601 date (YYYY-MM-DD)")
        raise ValidationError(f"{name} must be a date")

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
    Validates + normalizes incoming JSON (keyed by storage column names) against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by model attribute names.

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

    cols = _columns_by_name(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        attr_key, col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[attr_key] = None
            continue

        val = _coerce_value(k, col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[attr_key] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "selling_price" in patch and patch["selling_price"] is not None:
        price = patch["selling_price"]
        if price < 0:
            raise ValidationError("SellingPrice must be >= 0")
        if price > MAX_PRICE:
            raise ValidationError(f"SellingPrice cannot exceed {MAX_PRICE:,}")


def enforce_rules_stock_batch(patch: dict) -> None:
    # Batches never hold negative stock
    if "stock" in patch:
        if patch["stock"] is None or patch["stock"] < 0:
            raise ValidationError("Stock must be >= 0")


_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no", ""}


def _require_number(
    payload: dict, key: str, *, allow_none: bool = True, label: str | None = None
) -> Decimal | None:
    label = label or key
    raw = payload.get(key)
    if raw is None:
        if allow_none:
            return None
        raise ValidationError(f"{label} is required")
    try:
        value = to_decimal(raw)
    except ValueError:
        raise ValidationError(f"{label} must be a number")
    if value < 0:
        raise ValidationError(f"{label} must be >= 0")
    return value


def _require_bool(payload: dict, key: str) -> bool:
    """Strict flag: JSON booleans, 0/1, or "true"/"false" style strings. Missing -> False."""
    raw = payload.get(key)
    if raw is None:
        return False
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        s = raw.strip().lower()
        if s in _TRUE_STRINGS:
            return True
        if s in _FALSE_STRINGS:
            return False
    raise ValidationError(f"{key} must be a boolean")


def _require_positive_int(raw: Any, label: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        if isinstance(raw, str) and raw.strip().isdigit():
            raw = int(raw.strip())
        else:
            raise ValidationError(f"{label} must be a positive integer")
    if raw <= 0:
        raise ValidationError(f"{label} must be a positive integer")
    return raw


def normalize_payment_method(raw: Any) -> str:
    """Map client payment method ("cash", "gcash", "maya") to the stored enum value."""
    if raw is None or str(raw).strip() == "":
        return "Cash"
    key = str(raw).strip().lower()
    if key not in PAYMENT_METHODS:
        raise ValidationError(
            f"paymentMethod must be one of: {', '.join(sorted(PAYMENT_METHODS))}"
        )
    return PAYMENT_METHODS[key]


def validate_sale_request(payload: Any) -> dict:
    """
    Validate the camelCase body of POST /api/transactions.

    Returns a normalized dict with Decimal money and int quantities.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    clean_items = []
    for i, item in enumerate(items):
        label = f"items[{i}]"
        if not isinstance(item, dict):
            raise ValidationError(f"{label} must be an object")
        product_id = _require_positive_int(item.get("productId"), f"{label}.productId")
        quantity = _require_positive_int(item.get("quantity"), f"{label}.quantity")
        unit_price = _require_number(item, "unitPrice", allow_none=False, label=f"{label}.unitPrice")
        clean_items.append({
            "product_id": product_id,
            "quantity": quantity,
            "unit_price": unit_price,
        })

    reference_no = payload.get("referenceNo")
    if reference_no is not None:
        reference_no = str(reference_no).strip() or None
        if reference_no and len(reference_no) > 64:
            raise ValidationError("referenceNo exceeds max length 64")

    senior_pwd_id = payload.get("seniorPWDID")
    if senior_pwd_id is not None:
        senior_pwd_id = str(senior_pwd_id).strip() or None

    user_id = payload.get("userId")
    if user_id is not None:
        user_id = str(user_id).strip() or None

    return {
        "reference_no": reference_no,
        "payment_method": normalize_payment_method(payload.get("paymentMethod")),
        "client_subtotal": _require_number(payload, "subtotal"),
        "discount_eligible": _require_bool(payload, "isSeniorPWDActive"),
        "senior_pwd_id": senior_pwd_id,
        "cash_received": _require_number(payload, "cashReceived"),
        "change": _require_number(payload, "change"),
        "auth_user_id": user_id,
        "items": clean_items,
    }
