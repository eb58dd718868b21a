from decimal import Decimal

import pytest

from builddesk.errors import ValidationError
from builddesk.presentation.formatting import format_inr, number_to_words


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0"),
        (999, "999"),
        (1000, "1,000"),
        (75000, "75,000"),
        (4500000, "45,00,000"),
        (123456789, "12,34,56,789"),
        (Decimal("110000.00000"), "1,10,000"),
        (1234.5, "1,234.5"),
        (Decimal("0.12345"), "0.123"),
        (-2500, "-2,500"),
    ],
)
def test_format_inr(value, expected):
    assert format_inr(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "Zero"),
        (7, "Seven Only"),
        (15, "Fifteen Only"),
        (105, "One Hundred Five Only"),
        (75000, "Seventy Five Thousand Only"),
        (110000, "One Lakh Ten Thousand Only"),
        (4500000, "Forty Five Lakh Only"),
        (12345678, "One Crore Twenty Three Lakh Forty Five Thousand Six Hundred Seventy Eight Only"),
        (Decimal("999.99"), "Nine Hundred Ninety Nine Only"),
    ],
)
def test_number_to_words(value, expected):
    assert number_to_words(value) == expected


def test_number_to_words_rejects_negative():
    with pytest.raises(ValidationError):
        number_to_words(-1)
