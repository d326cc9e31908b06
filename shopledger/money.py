from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

ZERO = Decimal("0")


def to_amount(value: Any) -> Decimal:
    """Coerce a raw amount into a Decimal.

    Anything that is not a finite number (None, NaN, infinities, booleans,
    unparsable strings) becomes zero. Floats go through str() so 0.1 stays 0.1.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError):
            return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def add(a: Any, b: Any) -> Decimal:
    return to_amount(a) + to_amount(b)


def subtract(a: Any, b: Any) -> Decimal:
    return to_amount(a) - to_amount(b)


def minimum(a: Any, b: Any) -> Decimal:
    return min(to_amount(a), to_amount(b))


def clamp_non_negative(a: Any) -> Decimal:
    amount = to_amount(a)
    return amount if amount > ZERO else ZERO


def total(values: Iterable[Any]) -> Decimal:
    result = ZERO
    for value in values:
        result += to_amount(value)
    return result


def is_positive(value: Any) -> bool:
    """True only for finite numeric values above zero."""
    if value is None or isinstance(value, bool):
        return False
    return to_amount(value) > ZERO
