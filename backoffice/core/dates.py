"""Date filtering utilities for document queries."""

import calendar
import re
from datetime import date, datetime
from typing import Union

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def parse_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string. Raises ValueError otherwise."""
    if not _DATE_RE.match(value or ""):
        raise ValueError(f"Invalid date format: {value!r}, expected YYYY-MM-DD")
    return datetime.strptime(value, "%Y-%m-%d").date()


def is_valid_date(value: str) -> bool:
    try:
        parse_date(value)
    except ValueError:
        return False
    return True


def is_valid_year(year: Union[int, str]) -> bool:
    try:
        year_num = int(year)
    except (TypeError, ValueError):
        return False
    return 1900 <= year_num <= date.today().year + 1


def is_valid_month(month: Union[int, str]) -> bool:
    try:
        month_num = int(month)
    except (TypeError, ValueError):
        return False
    return 1 <= month_num <= 12


def is_valid_date_range(start: str, end: str) -> bool:
    if not (is_valid_date(start) and is_valid_date(end)):
        return False
    return parse_date(start) <= parse_date(end)


def year_date_range(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def month_date_range(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def get_month_name(month: int) -> str:
    if 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return "Invalid Month"
