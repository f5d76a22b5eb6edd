"""Calendar primitives: service dates, schedule times and service definitions."""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from enum import IntEnum
from zoneinfo import ZoneInfo

_DATE_RE = re.compile(r"[0-9]{8}")
_TIME_RE = re.compile(r"([0-9]+):([0-9]{2}):([0-9]{2})")

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class DateParseError(ValueError):
    """Raised when a string is not an 8-digit YYYYMMDD calendar date."""


class TimeParseError(ValueError):
    """Raised when a string is not an H:MM:SS schedule time."""


@dataclass(frozen=True, order=True, slots=True)
class Date:
    """A plain calendar date without timezone.

    Field order (year, month, day) makes the generated comparisons
    chronological.
    """

    year: int
    month: int
    day: int

    @classmethod
    def parse(cls, value: str) -> Date:
        """Parse a ``YYYYMMDD`` literal.

        Raises:
            DateParseError: If the value has any other shape or is not a real date.
        """
        value = value.strip()
        if not _DATE_RE.fullmatch(value):
            msg = f"Expected YYYYMMDD date, found {value!r}"
            raise DateParseError(msg)
        year, month, day = int(value[0:4]), int(value[4:6]), int(value[6:8])
        try:
            dt.date(year, month, day)
        except ValueError as exc:
            msg = f"Invalid calendar date {value!r}: {exc}"
            raise DateParseError(msg) from exc
        return cls(year, month, day)

    @classmethod
    def from_date(cls, value: dt.date) -> Date:
        return cls(value.year, value.month, value.day)

    def to_date(self) -> dt.date:
        return dt.date(self.year, self.month, self.day)

    def offset(self, days: int) -> Date:
        """Return the date shifted by ``days`` (may be negative)."""
        return Date.from_date(self.to_date() + dt.timedelta(days=days))

    def weekday(self) -> int:
        """Day of week, Monday = 0."""
        return self.to_date().weekday()

    def __str__(self) -> str:
        return f"{self.year:04d}{self.month:02d}{self.day:02d}"


@dataclass(frozen=True, order=True, slots=True)
class Time:
    """A schedule time; hours may exceed 23 for trips running past midnight."""

    hour: int
    minute: int
    second: int

    @classmethod
    def parse(cls, value: str) -> Time:
        """Parse an ``H:MM:SS`` / ``HH:MM:SS`` literal.

        Examples:
            "08:30:00" -> Time(8, 30, 0)
            "25:01:30" -> Time(25, 1, 30)

        Raises:
            TimeParseError: If the format is invalid.
        """
        value = value.strip()
        match = _TIME_RE.fullmatch(value)
        if not match:
            msg = f"Expected HH:MM:SS time, found {value!r}"
            raise TimeParseError(msg)
        hour, minute, second = (int(part) for part in match.groups())
        if minute > 59 or second > 59:
            msg = f"Invalid minutes/seconds in time {value!r}"
            raise TimeParseError(msg)
        return cls(hour, minute, second)

    @classmethod
    def from_seconds(cls, seconds: int) -> Time:
        hours, rest = divmod(seconds, 3600)
        minutes, secs = divmod(rest, 60)
        return cls(hours, minutes, secs)

    @property
    def seconds_since_midnight(self) -> int:
        return self.hour * 3600 + self.minute * 60 + self.second

    def __sub__(self, other: Time) -> int:
        return self.seconds_since_midnight - other.seconds_since_midnight

    def localize(self, date: Date, timezone: str) -> dt.datetime:
        """Combine with a service date and an agency timezone into an aware datetime.

        Times are measured from "noon minus 12h" of the service date, which
        differs from midnight on days with a DST transition.
        """
        tz = ZoneInfo(timezone)
        # aware arithmetic within one tzinfo is wall-clock, so step through UTC
        noon = dt.datetime(date.year, date.month, date.day, 12, tzinfo=tz)
        noon = noon.astimezone(dt.timezone.utc)
        instant = noon - dt.timedelta(hours=12) + dt.timedelta(seconds=self.seconds_since_midnight)
        return instant.astimezone(tz)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}"


class ExceptionType(IntEnum):
    ADDED = 1
    REMOVED = 2


@dataclass(slots=True)
class Service:
    """When trips run: a weekday bitmap over a date range plus dated exceptions.

    Bit ``i`` of ``daymap`` is set when the service runs on weekday ``i``
    (Monday = 0).
    """

    id: str
    daymap: int = 0
    start_date: Date | None = None
    end_date: Date | None = None
    exceptions: dict[Date, ExceptionType] = field(default_factory=dict)

    def has_day(self, weekday: int) -> bool:
        return bool(self.daymap >> weekday & 1)

    def set_day(self, weekday: int, active: bool) -> None:
        if active:
            self.daymap |= 1 << weekday
        else:
            self.daymap &= ~(1 << weekday)

    def exception_on(self, date: Date) -> ExceptionType | None:
        return self.exceptions.get(date)

    def set_exception(self, date: Date, kind: ExceptionType) -> None:
        self.exceptions[date] = kind

    def sorted_exceptions(self) -> list[tuple[Date, ExceptionType]]:
        return sorted(self.exceptions.items())

    def in_range(self, date: Date) -> bool:
        if self.start_date is None or self.end_date is None:
            return False
        return self.start_date <= date <= self.end_date

    def is_active_on(self, date: Date) -> bool:
        """True if an ADDED exception exists, or the regular pattern applies and
        no REMOVED exception cancels it."""
        kind = self.exceptions.get(date)
        if kind is ExceptionType.ADDED:
            return True
        if kind is ExceptionType.REMOVED:
            return False
        return self.in_range(date) and self.has_day(date.weekday())

    def is_empty(self) -> bool:
        """No active weekday and no exceptions at all."""
        return self.daymap == 0 and not self.exceptions

    def first_defined_date(self) -> Date | None:
        """Earliest date mentioned either by the range or an exception."""
        candidates = list(self.exceptions)
        if self.start_date is not None:
            candidates.append(self.start_date)
        return min(candidates) if candidates else None

    def last_defined_date(self) -> Date | None:
        """Latest date mentioned either by the range or an exception."""
        candidates = list(self.exceptions)
        if self.end_date is not None:
            candidates.append(self.end_date)
        return max(candidates) if candidates else None

    def first_active_date(self) -> Date | None:
        added = [d for d, kind in self.exceptions.items() if kind is ExceptionType.ADDED]
        regular = self._scan_range(forward=True)
        candidates = [*added, regular] if regular is not None else added
        return min(candidates) if candidates else None

    def last_active_date(self) -> Date | None:
        added = [d for d, kind in self.exceptions.items() if kind is ExceptionType.ADDED]
        regular = self._scan_range(forward=False)
        candidates = [*added, regular] if regular is not None else added
        return max(candidates) if candidates else None

    def _scan_range(self, forward: bool) -> Date | None:
        """First (or last) in-range date served by the weekday pattern."""
        if self.daymap == 0 or self.start_date is None or self.end_date is None:
            return None
        if self.end_date < self.start_date:
            return None
        step = 1 if forward else -1
        day = self.start_date if forward else self.end_date
        stop = self.end_date if forward else self.start_date
        while True:
            removed = self.exceptions.get(day) is ExceptionType.REMOVED
            if self.has_day(day.weekday()) and not removed:
                return day
            if day == stop:
                return None
            day = day.offset(step)

    def equals(self, other: Service) -> bool:
        """True if both services are active on exactly the same dates."""
        firsts = [d for d in (self.first_defined_date(), other.first_defined_date()) if d]
        lasts = [d for d in (self.last_defined_date(), other.last_defined_date()) if d]
        if not firsts or not lasts:
            return self.first_active_date() is None and other.first_active_date() is None
        day, end = min(firsts), max(lasts)
        while day <= end:
            if self.is_active_on(day) != other.is_active_on(day):
                return False
            day = day.offset(1)
        return True
