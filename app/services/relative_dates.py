"""
Relative due-date algebra for checklists

Converts between the symbolic ``WEDDING_DATE[+-]N`` format used by
templates and imports, and absolute calendar dates.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from app.core.exceptions import InvalidArgument

WEDDING_DATE = "WEDDING_DATE"

_RELATIVE_PATTERN = re.compile(r"WEDDING_DATE([+-])([0-9]+)")
_SECONDS_PER_DAY = 24 * 60 * 60

DateLike = Union[date, datetime]


@dataclass(frozen=True)
class RelativeDate:
    """Day offset from the wedding date (negative means before)"""
    offset: int


def parse_relative_date(value) -> Optional[RelativeDate]:
    """Parse ``WEDDING_DATE``, ``WEDDING_DATE+N`` or ``WEDDING_DATE-N``.

    Returns None for anything else, including non-string input.
    """
    if not value or not isinstance(value, str):
        return None

    trimmed = value.strip()
    if trimmed == WEDDING_DATE:
        return RelativeDate(offset=0)

    match = _RELATIVE_PATTERN.fullmatch(trimmed)
    if not match:
        return None

    sign, digits = match.groups()
    days = int(digits)
    return RelativeDate(offset=days if sign == "+" else -days)


def is_valid_relative_date(value) -> bool:
    return parse_relative_date(value) is not None


def format_offset(offset: int) -> str:
    """Canonical form of a day offset; zero is the bare marker"""
    if offset == 0:
        return WEDDING_DATE
    if offset > 0:
        return f"{WEDDING_DATE}+{offset}"
    return f"{WEDDING_DATE}{offset}"


def _require_date(value, label: str) -> None:
    if not isinstance(value, date):
        raise InvalidArgument(f"Invalid {label} provided")


def to_absolute(relative: str, wedding_date: DateLike) -> DateLike:
    """Shift the wedding date by the relative offset, in calendar days.

    The result has the same type as ``wedding_date`` and keeps its
    time of day; the input is never modified.
    """
    _require_date(wedding_date, "wedding date")

    parsed = parse_relative_date(relative)
    if parsed is None:
        raise InvalidArgument(f"Invalid relative date format: {relative}")

    try:
        return wedding_date + timedelta(days=parsed.offset)
    except OverflowError as e:
        raise InvalidArgument(f"Relative date out of range: {relative}") from e


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def to_relative(absolute: DateLike, wedding_date: DateLike) -> str:
    """Express ``absolute`` as an offset from ``wedding_date``.

    The day difference is rounded half up so DST or sub-day timezone
    drift does not change the result.
    """
    _require_date(absolute, "absolute date")
    _require_date(wedding_date, "wedding date")

    start = _as_datetime(wedding_date)
    end = _as_datetime(absolute)
    if (start.tzinfo is None) != (end.tzinfo is None):
        raise InvalidArgument("Cannot compare timezone-aware and naive dates")

    diff_days = (end - start).total_seconds() / _SECONDS_PER_DAY
    return format_offset(math.floor(diff_days + 0.5))


def parse_absolute_date(value: str) -> Optional[date]:
    """Parse a strict ``YYYY-MM-DD`` string; None if it is not a real date"""
    if not isinstance(value, str) or not re.fullmatch(r"[0-9]{4}-[0-9]{2}-[0-9]{2}", value.strip()):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None
