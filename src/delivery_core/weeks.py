"""Calendar week utilities.

Weeks run Monday to Sunday. Dates travel through the package as ISO
strings (YYYY-MM-DD); these helpers convert at the edges.

Examples:
    >>> from delivery_core.weeks import week_bounds
    >>> week_bounds("2025-10-08")
    ('2025-10-06', '2025-10-12')
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta


def parse_date(s: str) -> date:
    """Parse a date string in YYYY-MM-DD format.

    Raises:
        ValueError: If the date string is not in YYYY-MM-DD format.
    """
    return datetime.strptime(s, "%Y-%m-%d").date()


def week_start(d: str | date) -> date:
    """Monday of the week containing ``d``."""
    if isinstance(d, str):
        d = parse_date(d)
    return d - timedelta(days=d.weekday())


def week_bounds(d: str | date) -> tuple[str, str]:
    """Return (monday, sunday) ISO strings for the week containing ``d``."""
    monday = week_start(d)
    return monday.isoformat(), (monday + timedelta(days=6)).isoformat()


def previous_week(start: str, end: str) -> tuple[str, str]:
    """Shift a date window back by seven days."""
    prev_start = parse_date(start) - timedelta(days=7)
    prev_end = parse_date(end) - timedelta(days=7)
    return prev_start.isoformat(), prev_end.isoformat()


def unique_weeks(dates: Iterable[str]) -> list[str]:
    """Distinct Monday week starts for the given ISO dates, newest first.

    Empty or unparsable dates are ignored.
    """
    weeks = set()
    for d in dates:
        if not d:
            continue
        try:
            weeks.add(week_start(d).isoformat())
        except ValueError:
            continue
    return sorted(weeks, reverse=True)


def in_window(d: str, start: str | None, end: str | None) -> bool:
    """True when ISO date ``d`` lies inside the inclusive window.

    An open bound matches everything; an empty date matches only a fully
    open window.
    """
    if start is None and end is None:
        return True
    if not d:
        return False
    if start is not None and d < start:
        return False
    if end is not None and d > end:
        return False
    return True
