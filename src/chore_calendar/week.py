"""
Monday-to-Sunday week windows over naive calendar dates.

Dates are never converted through timestamps or timezones, so the same date
always lands in the same window regardless of where the server runs.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Union

DateLike = Union[date, datetime]


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class WeekWindow:
    """Inclusive [start, end] range where start is a Monday and end the following Sunday."""

    start: date
    end: date

    def contains(self, d: DateLike) -> bool:
        return self.start <= _as_date(d) <= self.end

    def days(self) -> List[date]:
        return [self.start + timedelta(days=i) for i in range(7)]


def _as_date(d: DateLike) -> date:
    # datetime is a subclass of date; drop the time part without any tz math
    if isinstance(d, datetime):
        return d.date()
    return d


# PUBLIC_INTERFACE
def week_window(d: DateLike) -> WeekWindow:
    """Return the Monday-Sunday window containing ``d``."""
    day = _as_date(d)
    start = day - timedelta(days=day.weekday())
    return WeekWindow(start=start, end=start + timedelta(days=6))


# PUBLIC_INTERFACE
def to_ymd(d: DateLike) -> str:
    """Render a date in the fixed YYYY-MM-DD storage form."""
    return _as_date(d).isoformat()


# PUBLIC_INTERFACE
def parse_ymd(value: str) -> date:
    """Parse the YYYY-MM-DD storage form back into a date."""
    return date.fromisoformat(value.strip())
