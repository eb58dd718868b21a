# builddesk/services/amounts.py
"""
Decimal helpers shared by catalog and estimation services.
Scales match the Numeric columns: quantity 3 dp, rate 2 dp, amount 5 dp.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from builddesk.errors import ValidationError

QUANTITY_EXP = Decimal("0.001")
RATE_EXP = Decimal("0.01")
AMOUNT_EXP = Decimal("0.00001")


def to_decimal(value: Any, *, field: str = "value") -> Decimal:
    '''将 int / float / str / Decimal 统一转成 Decimal，非法值抛 ValidationError'''
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        # float 先转 str，避免二进制误差
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}", field=field)


def quantity_of(value: Any, *, allow_zero: bool = True) -> Decimal:
    quantity = to_decimal(value, field="quantity").quantize(QUANTITY_EXP, rounding=ROUND_HALF_UP)
    if quantity < 0 or (quantity == 0 and not allow_zero):
        raise ValidationError(
            "quantity must be greater than 0" if not allow_zero else "quantity must not be negative",
            field="quantity",
        )
    return quantity


def rate_of(value: Any, *, allow_zero: bool = True) -> Decimal:
    rate = to_decimal(value, field="rate").quantize(RATE_EXP, rounding=ROUND_HALF_UP)
    if rate < 0 or (rate == 0 and not allow_zero):
        raise ValidationError(
            "rate must be greater than 0" if not allow_zero else "rate must not be negative",
            field="rate",
        )
    return rate


def line_amount(quantity: Decimal, rate: Decimal) -> Decimal:
    # 3 dp * 2 dp 最多 5 位小数，quantize 不丢精度
    return (Decimal(quantity) * Decimal(rate)).quantize(AMOUNT_EXP)


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    return sum((Decimal(a) for a in amounts), Decimal("0")).quantize(AMOUNT_EXP)
