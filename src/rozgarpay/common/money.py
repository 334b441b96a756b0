"""Money helpers.

All amounts are ``Decimal`` quantized to paise. Percentages and per-unit rates
are rounded half-up once per component so that breakdown rows always add up
to the stored totals.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Union

from ..core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# DECIMAL(14,2) columns
MAX_AMOUNT = Decimal("999999999999.99")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() first so floats coming from JSON keep their printed value
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid amount: {value!r}", field="amount")
    if not result.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}", field="amount")
    return result


def to_money(value: Number) -> Decimal:
    try:
        return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Amount is out of range: {value!r}", field="amount")


def percent_of(amount: Decimal, percentage: Number) -> Decimal:
    return to_money(amount * to_decimal(percentage) / Decimal("100"))


def money_sum(values: Iterable[Decimal]) -> Decimal:
    total = ZERO
    for v in values:
        total += v
    return to_money(total)


def require_positive_amount(value: Number, field_name: str = "amount") -> Decimal:
    if value is None or value == "":
        raise ValidationError("Amount is required", field=field_name)
    try:
        amount = to_money(value)
    except ValidationError:
        raise ValidationError("Amount is not a valid number", field=field_name)
    if amount <= ZERO:
        raise ValidationError("Amount must be greater than 0", field=field_name)
    if amount > MAX_AMOUNT:
        raise ValidationError(f"Amount must not exceed {MAX_AMOUNT}", field=field_name)
    return amount
