"""
Decimal money helpers
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from shiftbook.core.errors import InvalidAmount

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")

Number = Union[Decimal, int, float, str]


def to_money(value: Optional[Number]) -> Decimal:
    """Coerce to a two-place Decimal; None becomes zero"""
    if value is None:
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        if not amount.is_finite():
            raise InvalidAmount(f"Invalid amount: {value!r}")
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmount(f"Invalid amount: {value!r}") from exc
    if abs(amount) > MAX_AMOUNT:
        raise InvalidAmount(f"Amount out of range: {value!r}")
    return amount


def require_positive(value: Optional[Number], field: str = "amount") -> Decimal:
    amount = to_money(value)
    if amount <= ZERO:
        raise InvalidAmount(f"{field} must be greater than zero")
    return amount


def require_non_negative(value: Optional[Number], field: str = "amount") -> Decimal:
    amount = to_money(value)
    if amount < ZERO:
        raise InvalidAmount(f"{field} cannot be negative")
    return amount


def money_sum(values: Iterable[Optional[Number]]) -> Decimal:
    return sum((to_money(value) for value in values), ZERO)
