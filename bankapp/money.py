"""
Money Handling Module

Decimal helpers for account balances and transaction amounts.
NEVER uses float for monetary values: everything is rounded to cents.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union
import re

# Set global decimal context for financial precision
getcontext().prec = 28

CENT = Decimal('0.01')

AmountLike = Union[Decimal, int, float, str]


def to_decimal(value: AmountLike) -> Decimal:
    """
    Convert a value to Decimal without rounding.

    Floats go through str() so 0.1 becomes Decimal('0.1'), not the binary
    expansion of 0.1. Values whose integer part would not fit the decimal
    context once cents are added are rejected.

    Raises:
        ValueError: If the value is not a finite number or is too large
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to an amount")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Cannot convert {value!r} to an amount")
    if not value.is_finite():
        raise ValueError(f"Amount must be finite, got {value}")
    # Two digits are kept for cents
    if value and value.adjusted() > getcontext().prec - 3:
        raise ValueError(f"Amount is too large: {value}")
    return value


def to_amount(value: AmountLike) -> Decimal:
    """
    Convert a value to a cent-precision Decimal (ROUND_HALF_UP).

    Raises:
        ValueError: If the value is not a finite number or is too large
    """
    value = to_decimal(value)
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Amount is too large: {value}")


def has_sub_cent_digits(value: Decimal) -> bool:
    """True if rounding to cents would change the value"""
    return value != to_amount(value)


def to_rate(value: AmountLike) -> Decimal:
    """Convert an interest rate (percent) to Decimal without cent rounding"""
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Cannot convert {value!r} to a rate")
    return value


def parse_amount(text: str) -> Decimal:
    """
    Parse a user-entered amount.

    Accepts formats like "2694", "2,694", "$2,694" and "$2694.50". The
    value is returned unrounded so sub-cent input can be rejected by the
    operation that receives it.

    Raises:
        ValueError: If the text is empty, not a number or too large
    """
    if not text or not isinstance(text, str) or not text.strip():
        raise ValueError("Value must be a non-empty string")

    # Remove dollar signs, thousands separators and spaces
    clean_value = re.sub(r'[$,\s]', '', text.strip())
    if not re.match(r'^[-+]?(\d+(\.\d*)?|\.\d+)$', clean_value):
        raise ValueError(f"Cannot convert '{text}' to an amount")

    return to_decimal(clean_value)


def format_amount(amount: AmountLike) -> str:
    """Format as US currency, e.g. Decimal('2694.5') -> '$2,694.50'"""
    value = to_amount(amount)
    if value < 0:
        return f"-${-value:,.2f}"
    return f"${value:,.2f}"


def format_signed_amount(amount: AmountLike) -> str:
    """Format with an explicit sign before the dollar sign: '+$2,694.00'"""
    value = to_amount(amount)
    sign = "+" if value >= 0 else "-"
    return f"{sign}${abs(value):,.2f}"
