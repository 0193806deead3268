from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]

WHOLE_UNIT = Decimal("1")


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: Number) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(to_decimal(value).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP))
