"""Calendar-date helpers shared by every analytics module.

All functions work on ``datetime.date`` values. Strings are only accepted by
the parsing helpers, which is where raw input enters the core.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta
from typing import Any

# Rows carrying this value in the date column are report footers, not data
TOTALS_SENTINEL = "Totals"

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_MDY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})$")
_DMY_RE = re.compile(r"^(\d{1,2})[.-](\d{1,2})[.-](\d{4})$")


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(value: Any) -> date | None:
    """Parse a raw date value into a calendar date.

    Handles:
    - ``date`` / ``datetime`` objects (time component dropped)
    - ISO ``YYYY-MM-DD`` (optionally followed by a time part)
    - ``M/D/YYYY`` and ``M/D/YY`` (two-digit years are 20xx)
    - ``D-M-YYYY`` and ``D.M.YYYY``

    Returns:
        The parsed date, or None for empty, sentinel, or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text or text == TOTALS_SENTINEL:
        return None

    # Drop a trailing time part ("2024-01-05 00:00:00", "1/5/24 13:00")
    text = re.split(r"[ T]", text, maxsplit=1)[0]

    if match := _ISO_RE.match(text):
        year, month, day = (int(g) for g in match.groups())
        return _safe_date(year, month, day)

    if match := _MDY_RE.match(text):
        month, day = int(match.group(1)), int(match.group(2))
        year_text = match.group(3)
        year = int(year_text) + 2000 if len(year_text) == 2 else int(year_text)
        return _safe_date(year, month, day)

    if match := _DMY_RE.match(text):
        day, month, year = (int(g) for g in match.groups())
        return _safe_date(year, month, day)

    return None


def normalize_date(value: Any) -> str:
    """Return the ISO ``YYYY-MM-DD`` form of a date value, or "" if invalid."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else ""


def format_date_display(value: Any) -> str:
    """Format as ``M/D/YYYY`` for display, or "" if invalid."""
    parsed = parse_date(value)
    if parsed is None:
        return ""
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def is_same_day(first: Any, second: Any) -> bool:
    """True when both values parse to the same calendar date."""
    a = parse_date(first)
    b = parse_date(second)
    return a is not None and a == b


def start_of_day(day: date) -> datetime:
    """00:00:00.000000 on the given day."""
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """23:59:59.999999 on the given day, for inclusive comparisons."""
    return datetime.combine(day, time.max)


def generate_date_range(start: date, end: date) -> list[date]:
    """Every calendar day from start to end inclusive (empty if end < start)."""
    span = (end - start).days
    return [start + timedelta(days=offset) for offset in range(span + 1)]


def get_complete_date_range(records: Iterable[Any]) -> list[date]:
    """Every calendar day between the earliest and latest valid record date.

    Accepts records exposing a ``date`` attribute, mappings with a ``date``
    key, or raw date values. Sentinel and unparseable dates are ignored.
    """
    dates: list[date] = []
    for record in records:
        if isinstance(record, (date, str)):
            raw = record
        elif isinstance(record, Mapping):
            raw = record.get("date")
        else:
            raw = getattr(record, "date", None)
        parsed = parse_date(raw)
        if parsed is not None:
            dates.append(parsed)

    if not dates:
        return []

    return generate_date_range(min(dates), max(dates))


def is_date_in_range(day: date, start: date | None = None, end: date | None = None) -> bool:
    """Inclusive range check; a missing bound is open."""
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def calculate_percent_change(current: float, previous: float) -> float:
    """Percentage change from previous to current.

    A zero previous value yields 100 for an increase from zero and 0 otherwise.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100
