"""ISO date helpers shared by phases, overrides and the materializer."""

import re
from datetime import date, datetime, timedelta
from typing import Iterator, Union

from .errors import ScheduleValidationError

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DateLike = Union[date, str]


def is_valid_iso_date(value: str) -> bool:
    """Check that a string is a fixed-width YYYY-MM-DD calendar date."""
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_iso_date(value: str, field_name: str = "date") -> date:
    """Parse a YYYY-MM-DD string.
    
    Raises:
        ScheduleValidationError: If the string is malformed or not a real date.
    """
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        raise ScheduleValidationError(f"{field_name} must be in YYYY-MM-DD format, got {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ScheduleValidationError(f"{field_name} must be a valid date, got {value!r}")


def to_date(value: DateLike) -> date:
    """Coerce a date, datetime or ISO string to a plain date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(value)


def sunday_based_weekday(day: date) -> int:
    """Day of week where 0 is Sunday and 6 is Saturday."""
    return day.isoweekday() % 7


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
