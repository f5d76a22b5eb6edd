"""Tests for service dates, schedule times and service calendars."""

from __future__ import annotations

import pytest

from transit_feed.models.calendar import (
    Date,
    DateParseError,
    ExceptionType,
    Service,
    Time,
    TimeParseError,
)


class TestDate:
    def test_parse(self) -> None:
        assert Date.parse("20240131") == Date(2024, 1, 31)

    @pytest.mark.parametrize(
        "value",
        ["2024013", "2024-01-31", "20240230", "abcdefgh", "２０２４０１３１", "202401311"],
    )
    def test_parse_rejects_invalid(self, value: str) -> None:
        with pytest.raises(DateParseError):
            Date.parse(value)

    def test_ordering_is_chronological(self) -> None:
        assert Date(2023, 12, 31) < Date(2024, 1, 1) < Date(2024, 1, 2)

    def test_offset_crosses_month_and_year(self) -> None:
        assert Date(2024, 2, 28).offset(2) == Date(2024, 3, 1)
        assert Date(2024, 1, 1).offset(-1) == Date(2023, 12, 31)

    def test_weekday_monday_is_zero(self) -> None:
        assert Date(2024, 1, 1).weekday() == 0

    def test_str(self) -> None:
        assert str(Date(2024, 7, 4)) == "20240704"


class TestTime:
    def test_parse_past_midnight(self) -> None:
        time = Time.parse("25:01:30")
        assert time == Time(25, 1, 30)
        assert time.seconds_since_midnight == 25 * 3600 + 90

    def test_invalid_minutes(self) -> None:
        with pytest.raises(TimeParseError):
            Time.parse("12:60:00")

    @pytest.mark.parametrize("value", ["٠٨:00:00", "08:00", "08:0 0:00"])
    def test_parse_rejects_malformed(self, value: str) -> None:
        with pytest.raises(TimeParseError):
            Time.parse(value)

    def test_from_seconds(self) -> None:
        assert Time.from_seconds(90090) == Time(25, 1, 30)

    def test_difference_in_seconds(self) -> None:
        assert Time(7, 5, 0) - Time(7, 0, 0) == 300

    def test_str_is_zero_padded(self) -> None:
        assert str(Time(6, 5, 0)) == "06:05:00"

    def test_localize_regular_day(self) -> None:
        instant = Time(8, 30, 0).localize(Date(2024, 6, 3), "America/Vancouver")
        assert (instant.year, instant.month, instant.day) == (2024, 6, 3)
        assert (instant.hour, instant.minute) == (8, 30)

    def test_localize_is_measured_from_noon_minus_twelve_hours(self) -> None:
        # clocks spring forward at 02:00 on 2024-03-10
        midnight = Time(0, 0, 0).localize(Date(2024, 3, 10), "America/New_York")
        assert (midnight.day, midnight.hour) == (9, 23)
        noon = Time(12, 0, 0).localize(Date(2024, 3, 10), "America/New_York")
        assert (noon.day, noon.hour) == (10, 12)


class TestService:
    """Tests for weekday patterns combined with dated exceptions."""

    @staticmethod
    def _mondays() -> Service:
        service = Service(id="MON", start_date=Date(2024, 1, 1), end_date=Date(2024, 1, 14))
        service.set_day(0, True)
        return service

    def test_day_bits(self) -> None:
        service = Service(id="S")
        service.set_day(5, True)
        service.set_day(6, True)
        service.set_day(5, False)
        assert not service.has_day(5)
        assert service.has_day(6)
        assert service.daymap == 1 << 6

    def test_active_on_pattern_dates(self) -> None:
        service = self._mondays()
        assert service.is_active_on(Date(2024, 1, 8))
        assert not service.is_active_on(Date(2024, 1, 9))
        assert not service.is_active_on(Date(2024, 1, 15))

    def test_exceptions_override_pattern(self) -> None:
        service = self._mondays()
        service.set_exception(Date(2024, 1, 8), ExceptionType.REMOVED)
        service.set_exception(Date(2024, 1, 10), ExceptionType.ADDED)
        assert not service.is_active_on(Date(2024, 1, 8))
        assert service.is_active_on(Date(2024, 1, 10))
        assert service.exception_on(Date(2024, 1, 10)) == ExceptionType.ADDED

    def test_first_and_last_active_date_skip_removed_days(self) -> None:
        service = self._mondays()
        service.set_exception(Date(2024, 1, 1), ExceptionType.REMOVED)
        assert service.first_active_date() == Date(2024, 1, 8)
        assert service.last_active_date() == Date(2024, 1, 8)

    def test_defined_dates_include_exceptions(self) -> None:
        service = self._mondays()
        service.set_exception(Date(2024, 2, 1), ExceptionType.REMOVED)
        assert service.first_defined_date() == Date(2024, 1, 1)
        assert service.last_defined_date() == Date(2024, 2, 1)

    def test_no_active_date(self) -> None:
        service = self._mondays()
        service.set_exception(Date(2024, 1, 1), ExceptionType.REMOVED)
        service.set_exception(Date(2024, 1, 8), ExceptionType.REMOVED)
        assert service.first_active_date() is None
        assert not service.is_empty()

    def test_is_empty(self) -> None:
        assert Service(id="S").is_empty()

    def test_sorted_exceptions(self) -> None:
        service = Service(id="S")
        service.set_exception(Date(2024, 3, 1), ExceptionType.ADDED)
        service.set_exception(Date(2024, 1, 1), ExceptionType.REMOVED)
        assert [d for d, _ in service.sorted_exceptions()] == [Date(2024, 1, 1), Date(2024, 3, 1)]

    def test_equals_compares_active_dates(self) -> None:
        by_dates = Service(id="DATES")
        by_dates.set_exception(Date(2024, 1, 1), ExceptionType.ADDED)
        by_dates.set_exception(Date(2024, 1, 8), ExceptionType.ADDED)
        assert self._mondays().equals(by_dates)
        by_dates.set_exception(Date(2024, 1, 9), ExceptionType.ADDED)
        assert not self._mondays().equals(by_dates)
