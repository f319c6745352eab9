from collections.abc import Iterable
from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def round_money(value: Union[Decimal, float, int, str]) -> Decimal:
    """
    Round monetary value to 2 decimal places using ROUND_HALF_UP.

    Examples:
        >>> round_money(10.125)
        Decimal('10.13')
        >>> round_money("4000")
        Decimal('4000.00')
    """
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    if value < 0:
        return value.quantize(CENT, rounding=ROUND_HALF_DOWN)
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Union[Decimal, float, int, str]]) -> Decimal:
    """Sum amounts and round once at the end."""
    total = Decimal("0")
    for value in values:
        total += value if isinstance(value, Decimal) else Decimal(str(value))
    return round_money(total)
