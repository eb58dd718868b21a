# builddesk/presentation/formatting.py
"""
Display helpers for Indian-rupee documents.
"""
from decimal import Decimal, ROUND_HALF_UP, ROUND_DOWN
from typing import Any

from builddesk.errors import ValidationError
from builddesk.services.amounts import to_decimal

_ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

CRORE = 10_000_000
LAKH = 100_000
THOUSAND = 1_000
HUNDRED = 100


def _group_indian(digits: str) -> str:
    '''"4500000" -> "45,00,000"：末三位一组，其余两位一组'''
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_inr(value: Any) -> str:
    '''
    en-IN number formatting: lakh/crore grouping, no forced decimals,
    at most three fraction digits (trailing zeros dropped).

    :param value: int / float / str / Decimal
    :return: e.g. 4500000 -> "45,00,000", 1234.5 -> "1,234.5"
    :rtype: str
    '''
    amount = to_decimal(value).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    integer_part, _, fraction = f"{abs(amount):f}".partition(".")
    fraction = fraction.rstrip("0")
    text = _group_indian(integer_part)
    if fraction:
        text = f"{text}.{fraction}"
    return f"{sign}{text}"


def _below_thousand(n: int) -> str:
    words = []
    if n >= HUNDRED:
        words.append(f"{_ONES[n // HUNDRED]} Hundred")
        n %= HUNDRED
    if n >= 20:
        words.append(_TENS[n // 10])
        n %= 10
    if n:
        words.append(_ONES[n])
    return " ".join(words)


def _to_words(n: int) -> str:
    parts = []
    if n >= CRORE:
        # 超过 99 crore 时 crore 前面的数继续按印度计数法展开
        parts.append(f"{_to_words(n // CRORE)} Crore")
        n %= CRORE
    if n >= LAKH:
        parts.append(f"{_below_thousand(n // LAKH)} Lakh")
        n %= LAKH
    if n >= THOUSAND:
        parts.append(f"{_below_thousand(n // THOUSAND)} Thousand")
        n %= THOUSAND
    if n:
        parts.append(_below_thousand(n))
    return " ".join(parts)


def number_to_words(value: Any) -> str:
    '''
    Convert a non-negative amount to Indian numbering-system words.
    Only the integer rupee value is used, the fractional part is dropped.

    :param value: 金额
    :return: e.g. 4500000 -> "Forty Five Lakh Only", 0 -> "Zero"
    :rtype: str
    '''
    amount = to_decimal(value, field="amount")
    if amount < 0:
        raise ValidationError("amount must not be negative", field="amount")
    n = int(amount.to_integral_value(rounding=ROUND_DOWN))
    if n == 0:
        return "Zero"
    return f"{_to_words(n)} Only"
