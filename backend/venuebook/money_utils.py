# Overview: Decimal money helpers; every stored amount has two decimal places.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

# Upper bound matches NUMERIC(15,2)
MAX_AMOUNT = Decimal("9999999999999.99")


def _to_decimal(value) -> Decimal:
    if value is None:
        raise ValueError("amount is required")
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, (int, float, str)):
        try:
            d = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")
    else:
        raise ValueError(f"Invalid amount: {value!r}")
    if not d.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return d


def _round(d: Decimal) -> Decimal:
    try:
        return d.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {d!r}")


def to_money(value) -> Decimal:
    """
    Coerce a number or numeric string to a 2-place Decimal (half-up).

    Floats go through str() so 0.1 becomes Decimal("0.10"), not the binary
    expansion. Raises ValueError for anything non-numeric or beyond
    MAX_AMOUNT in magnitude.
    """
    d = _to_decimal(value)
    if abs(d) > MAX_AMOUNT:
        raise ValueError(f"amount exceeds {MAX_AMOUNT}")
    return _round(d)


def round_money(value) -> Decimal:
    """to_money without the MAX_AMOUNT bound, for computed totals."""
    return _round(_to_decimal(value))


def sum_money(values: Iterable) -> Decimal:
    total = ZERO
    for v in values:
        total += to_money(v)
    return total


def percentage(part, whole) -> Decimal:
    """part / whole * 100 rounded to 2 places; 0 when whole is 0."""
    whole = round_money(whole)
    if whole == 0:
        return ZERO
    return _round(round_money(part) / whole * HUNDRED)


def money_str(value) -> Optional[str]:
    """JSON-safe representation ("1234.50"); aggregates may exceed MAX_AMOUNT."""
    if value is None:
        return None
    return str(round_money(value))
