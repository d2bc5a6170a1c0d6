"""Wall-clock helpers: weekday keys, minute-of-day keys, and time windows.

All functions are pure. They read the wall clock of the instant they are
given, so callers convert to the shop's local time zone first.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Self

from billing.domain.errors import InvalidTimeRangeError

_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: str) -> int:
    """Return minutes since midnight for an ``HH:MM`` string."""
    match = _HHMM.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise InvalidTimeRangeError(str(value))
    return int(match.group(1)) * 60 + int(match.group(2))


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minute_of_day(instant: datetime) -> int:
    return instant.hour * 60 + instant.minute


def weekday_of(instant: datetime) -> int:
    """Weekday number with Sunday as 0 and Saturday as 6."""
    return instant.isoweekday() % 7


@dataclass(frozen=True)
class TimeRange:
    """Intraday window in minutes since midnight, both ends inclusive.

    When ``start > end`` the window wraps past midnight.
    """

    start: int
    end: int

    @classmethod
    def from_strings(cls, start: str, end: str) -> Self:
        return cls(start=parse_hhmm(start), end=parse_hhmm(end))

    @property
    def is_overnight(self) -> bool:
        return self.start > self.end

    def contains(self, minute: int) -> bool:
        if self.is_overnight:
            return minute >= self.start or minute <= self.end
        return self.start <= minute <= self.end

    def contains_instant(self, instant: datetime) -> bool:
        return self.contains(minute_of_day(instant))

    def as_strings(self) -> tuple[str, str]:
        return format_hhmm(self.start), format_hhmm(self.end)


def matches_days(days: frozenset[int], instant: datetime) -> bool:
    """An empty day set matches every day."""
    return not days or weekday_of(instant) in days
