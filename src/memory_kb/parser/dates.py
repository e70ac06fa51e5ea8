"""Flexible dates: a year, a year and month, or a full date.

Event start and end values are written as ``YYYY``, ``YYYY-MM`` or
``YYYY-MM-DD``. The index stores the instant (missing parts padded with
01) alongside a precision marker, so the original string can be rebuilt.
"""

import calendar
import re
from datetime import datetime, time
from enum import IntEnum

from ..errors import InvalidDateError

FLEX_DATE_PATTERN = re.compile(r"^\d{4}(-\d{2}(-\d{2})?)?$")

# Open-ended timeline bounds cover every date a flexible date can name
MIN_DATE = datetime.min
MAX_DATE = datetime.max


class Precision(IntEnum):
    """How much of a flexible date was given."""

    YEAR = 0
    MONTH = 1
    DAY = 2


_PRECISION_BY_LENGTH = {4: Precision.YEAR, 7: Precision.MONTH, 10: Precision.DAY}
_LENGTH_BY_PRECISION = {v: k for k, v in _PRECISION_BY_LENGTH.items()}


def is_flex_date(value: str) -> bool:
    """Return True if value is empty or a valid flexible date."""
    if value == "":
        return True
    try:
        parse_flex_date(value)
    except InvalidDateError:
        return False
    return True


def parse_flex_date(value: str) -> tuple[datetime | None, Precision | None]:
    """Convert a flexible date string into an instant and a precision.

    Args:
        value: "", "YYYY", "YYYY-MM" or "YYYY-MM-DD".

    Returns:
        (instant, precision), or (None, None) for an empty string.

    Raises:
        InvalidDateError: If value has another shape or is not a real date.
    """
    if value == "":
        return None, None
    if not FLEX_DATE_PATTERN.match(value):
        raise InvalidDateError(value)

    precision = _PRECISION_BY_LENGTH[len(value)]
    padded = value + "-01-01"[: 10 - len(value)]
    try:
        return datetime.strptime(padded, "%Y-%m-%d"), precision
    except ValueError as e:
        raise InvalidDateError(value) from e


def format_flex_date(instant: datetime | None, precision: Precision | int | None) -> str:
    """Convert an instant and precision back into a flexible date string."""
    if instant is None:
        return ""
    full = f"{instant.year:04d}-{instant.month:02d}-{instant.day:02d}"
    if precision is None:
        return full
    return full[: _LENGTH_BY_PRECISION[Precision(precision)]]


def period_end(instant: datetime, precision: Precision | int) -> datetime:
    """Return the last moment of the year, month or day a flexible date names."""
    precision = Precision(precision)
    if precision == Precision.YEAR:
        return datetime.combine(instant.replace(month=12, day=31), time.max)
    if precision == Precision.MONTH:
        last_day = calendar.monthrange(instant.year, instant.month)[1]
        return datetime.combine(instant.replace(day=last_day), time.max)
    return datetime.combine(instant.date(), time.max)


def range_bounds(start: str = "", end: str = "") -> tuple[datetime, datetime]:
    """Turn timeline bounds into an inclusive instant range.

    An empty start means the beginning of time and an empty end the end of
    time. A partial end date covers its whole period, so an end of "2004"
    includes everything dated in 2004.

    Raises:
        InvalidDateError: If either bound is not a flexible date.
    """
    lower = MIN_DATE
    upper = MAX_DATE
    if start:
        lower, _ = parse_flex_date(start)
    if end:
        instant, precision = parse_flex_date(end)
        upper = period_end(instant, precision)
    return lower, upper
