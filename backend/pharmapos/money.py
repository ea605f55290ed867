from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """
    Coerce a JSON number / string / Decimal to Decimal.

    Floats go through str() so 0.1 stays 0.1 rather than its binary expansion.
    Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError("boolean is not a number")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"not a number: {value!r}")
    else:
        raise ValueError(f"not a number: {value!r}")

    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def quantize_money(value: Decimal) -> Decimal:
    """Nearest-cent rounding (half-up). Presentation only."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_out(value) -> float | None:
    """JSON-friendly money: rounded to cents, emitted as a number."""
    if value is None:
        return None
    return float(quantize_money(to_decimal(value)))
