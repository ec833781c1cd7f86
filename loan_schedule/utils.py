"""Utility functions for the loan schedule.

This module provides the date arithmetic every other part of the schedule is
built on (day counts, month ends, "+1 day") together with helpers for parsing
user input into Python data types. Day-count helpers never raise: anything
that is not a date yields a zero-day interval.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, getcontext
from typing import Any, Optional, Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

ZERO = Decimal("0")
ONE_DAY = timedelta(days=1)

Number = Union[int, float, Decimal, str]


def as_date(value: Any) -> Optional[date]:
    """Return ``value`` as a ``date`` or ``None`` when it is not a date.

    ``datetime`` instances are truncated to their calendar day, so any time of
    day is ignored.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return None


def days_between(start: Any, end: Any) -> int:
    """Return the number of calendar days from ``start`` to ``end``.

    Time of day is ignored. Non-date input yields 0.
    """
    s = as_date(start)
    e = as_date(end)
    if s is None or e is None:
        return 0
    return (e - s).days


def days_between_inclusive(start: Any, end: Any) -> int:
    """Return the inclusive day count (``days_between + 1``), or 0 for non-dates."""
    if as_date(start) is None or as_date(end) is None:
        return 0
    return days_between(start, end) + 1


def last_day_of_month(dt: date) -> date:
    """Return the last calendar day of the month containing ``dt``."""
    return date(dt.year, dt.month, calendar.monthrange(dt.year, dt.month)[1])


def last_day_after_adding_months(dt: date, months: int) -> date:
    """Return the month end ``months`` months after the month of ``dt``.

    For example 2024-03-14 plus one month gives 2024-04-30. Year rollover is
    handled in both directions.
    """
    index = dt.month - 1 + months
    year = dt.year + index // 12
    month = index % 12 + 1
    return date(year, month, calendar.monthrange(year, month)[1])


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def one_day_after(dt: date) -> date:
    """Return the next calendar day."""
    return as_date(dt) + ONE_DAY


def is_edge_day(dt: date) -> bool:
    """True when the day of month is the 1st or later than the 28th."""
    return dt.day == 1 or dt.day > 28


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Convert a stored cell value into a ``Decimal``.

    Blank cells, ``None`` and anything non-numeric become ``default``. Floats
    go through ``str`` so that ``0.1`` stays ``Decimal("0.1")``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "").replace("$", "")
        if not cleaned:
            return default
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return default
    return default


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        return Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def parse_percent(value: Number) -> Decimal:
    """Parse a percentage given as ``"5"``, ``"5%"``, ``"0.05"`` or a number.

    Values greater than 1 are read as whole percentages, so ``"5"`` and
    ``"5%"`` both mean 5 %. Raises ``ValueError`` on malformed input.
    """
    if isinstance(value, Decimal):
        pct = value
    elif isinstance(value, (int, float)):
        pct = Decimal(str(value))
    else:
        text = str(value).strip()
        explicit = text.endswith("%")
        if explicit:
            text = text[:-1]
        pct = decimal_from_str(text) if text else ZERO
        if explicit:
            return pct / 100
    if pct > 1:
        pct = pct / 100
    return pct


def parse_date(value: Any) -> date:
    """Parse ``YYYY-MM-DD`` or ``MM/DD/YYYY`` strings (or pass dates through).

    Raises ``ValueError`` if the value is not a recognisable date.
    """
    parsed = as_date(value)
    if parsed is not None:
        return parsed
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date string: {value}")


def parse_optional_date(value: Any) -> Optional[date]:
    """Like :func:`parse_date` but blank values become ``None``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_date(value)


def parse_yes_no(value: Any) -> bool:
    """Interpret the spreadsheet style "Yes"/"No" flags."""
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in ("yes", "y", "true", "1"):
        return True
    if text in ("no", "n", "false", "0", ""):
        return False
    raise ValueError(f"Expected Yes or No; got {value}")


def yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def format_currency(amount: Decimal) -> str:
    """Render an amount as US currency, e.g. ``$1,234.50``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_percent(pct: Decimal) -> str:
    """Render a fractional percentage with trailing zeros stripped (``0.05`` -> ``5%``)."""
    scaled = (pct * 100).normalize()
    if scaled == scaled.to_integral_value():
        scaled = scaled.quantize(Decimal("1"))
    return f"{scaled:f}%"
