"""Decimal helpers shared by the pricing modules."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """Coerce ints, floats and numeric strings to a finite ``Decimal``.

    Floats go through ``str`` so ``85.71`` stays ``Decimal("85.71")``.
    NaN and infinities are rejected with ``ValueError``.
    """
    if isinstance(value, bool):
        raise TypeError("Booleans are not monetary values")
    if isinstance(value, Decimal):
        result = value
    else:
        if isinstance(value, float):
            value = str(value)
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError) as exc:
            raise ValueError(f"Not a decimal value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite decimal value: {value!r}")
    return result


def quantize_money(value) -> Decimal:
    """Round to currency precision. Only used on final output."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def apply_percent_discount(amount: Decimal, discount_percent: Decimal) -> Decimal:
    return amount * (1 - discount_percent / HUNDRED)
