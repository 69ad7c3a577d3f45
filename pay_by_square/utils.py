"""Utility functions for the Pay by Square encoder.

This module provides helpers for coercing user input into Python data types
(decimals, integers, dates) and for rendering amounts the way the payment
record expects them.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from typing import Optional, Union

from .exceptions import ValidationError

getcontext().prec = 28  # enough precision for any realistic payment amount

TWO_PLACES = Decimal("0.01")


def decimal_from_str(value: Union[str, int, float, Decimal]) -> Decimal:
    """Convert a numeric value into a ``Decimal``.

    Strings may contain thousands separators (commas) and surrounding
    whitespace. Floats go through ``str`` so that ``25.3`` becomes
    ``Decimal("25.3")`` rather than its binary approximation.

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a number.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    try:
        cleaned = str(value).strip().replace(",", "")
        result = Decimal(cleaned)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid numeric value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def int_or_none(value: Union[str, int, None]) -> Optional[int]:
    """Coerce a payment symbol to ``int``; ``None`` and ``""`` mean absent."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid symbol value: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError as exc:
        raise ValueError(f"Invalid symbol value: {value!r}") from exc


def parse_date(value: Union[str, date, datetime]) -> date:
    """Parse a due date into a ``date`` object.

    Parameters
    ----------
    value: str | date | datetime
        A ``date`` (returned as is), a ``datetime`` (its date part is used) or
        a string in ``YYYY-MM-DD`` or ``YYYYMMDD`` form.

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%Y%m%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date string: {value!r}")


def format_amount(amount: Decimal) -> str:
    """Round ``amount`` to two decimals and render it in its shortest form.

    Trailing fractional zeros are dropped and exponent notation is never
    used, so ``Decimal("25.30")`` renders as ``"25.3"`` and
    ``Decimal("100.00")`` as ``"100"``. Rounding is half away from zero.

    Raises
    ------
    ValidationError
        If the amount has too many digits to be rounded to two decimals.
    """
    try:
        rounded = amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError(f"Amount {amount} is too large") from exc
    if rounded == 0:
        return "0"
    return format(rounded.normalize(), "f")


def format_symbol(value: Optional[int]) -> str:
    return "" if value is None else str(value)
