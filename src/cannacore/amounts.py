"""Currency amounts.

Every currency quantity is a ``decimal.Decimal``. The default decimal
context keeps 28 significant digits over an exponent range of +/-999999,
so totals far past 1e308 stay distinct instead of collapsing to infinity.

Floats are produced only for display and for heuristic ranking (ROI);
comparisons and storage always use the Decimal value.
"""
from __future__ import annotations

import math
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Optional, Union

AmountLike = Union[Decimal, int, float, str, None]

ZERO = Decimal(0)
ONE = Decimal(1)

# Integral values below this magnitude serialize without an exponent.
_PLAIN_DIGITS = 21

_SUFFIXES = ["", "K", "M", "B", "T", "Qa", "Qi"]


def to_amount(value: AmountLike, default: Decimal = ZERO) -> Decimal:
    """Coerce *value* into a finite Decimal, or return *default*."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return default
        return Decimal(str(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return default
        return parsed if parsed.is_finite() else default
    return default


def amount_to_str(value: Decimal) -> str:
    """Serialize an amount so that ``to_amount`` reproduces an equal value."""
    value = to_amount(value)
    if value == value.to_integral_value() and value.adjusted() < _PLAIN_DIGITS:
        return str(value.quantize(ONE))
    return str(value.normalize())


def sub_clamped(a: Decimal, b: Decimal) -> Decimal:
    result = a - b
    return result if result > ZERO else ZERO


def floor_amount(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


def amount_pow(base: Decimal, exponent: int) -> Decimal:
    if exponent == 0:
        return ONE
    return base ** exponent


def amount_sqrt(value: Decimal) -> Decimal:
    if value <= ZERO:
        return ZERO
    return value.sqrt()


def amount_to_float(value: Decimal) -> float:
    """Lossy conversion for display and ranking; may return ``inf``."""
    try:
        return float(value)
    except (OverflowError, ValueError):
        return math.inf


def format_amount(value: AmountLike, digits: int = 2) -> str:
    amount = to_amount(value)
    if amount < 1000:
        if amount == amount.to_integral_value():
            return str(amount.quantize(ONE))
        return f"{amount:.{digits}f}"
    exponent = amount.adjusted()
    group = exponent // 3
    if group < len(_SUFFIXES):
        scaled = amount.scaleb(-3 * group)
        return f"{scaled:.{digits}f}{_SUFFIXES[group]}"
    mantissa = amount.scaleb(-exponent)
    return f"{mantissa:.{digits}f}e{exponent}"


def parse_int(value: object, default: int = 0, minimum: Optional[int] = 0) -> int:
    """Integer coercion used while sanitising persisted data."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        result = value
    elif isinstance(value, float) and math.isfinite(value):
        result = int(math.floor(value))
    else:
        return default
    if minimum is not None and result < minimum:
        return minimum
    return result
