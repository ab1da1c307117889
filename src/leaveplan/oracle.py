"""Holiday oracles: the calendar authority the planner asks about each day.

An oracle answers three questions for a date:

* is it a *rest day* under the base weekly pattern (e.g. Saturday/Sunday),
* is it a *designated holiday*,
* does it carry an *actual work obligation* once make-up workdays and
  substituted days off are taken into account.

The answers are coroutines so that a remote calendar service can be plugged
in without changing the planner.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from typing import Protocol

import holidays

# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class HolidayOracle(Protocol):
    async def is_rest_day(self, day: datetime.date) -> bool: ...

    async def is_designated_holiday(self, day: datetime.date) -> bool: ...

    async def is_actual_working_day(self, day: datetime.date) -> bool: ...


# ---------------------------------------------------------------------------
# Country presets
# ---------------------------------------------------------------------------

PRESETS: dict[str, str] = {
    "cn": "China public holidays (with make-up workdays)",
    "hk": "Hong Kong public holidays",
    "tw": "Taiwan public holidays (with make-up workdays)",
    "us": "United States federal holidays",
}


class CountryHolidayOracle:
    """Oracle backed by the ``holidays`` package.

    The country calendar is built lazily on first use and expands to new
    years on demand, so one instance should serve one computation only.
    """

    def __init__(self, country: str = "CN", extra_holidays: Iterable[datetime.date] = ()):
        self.country = country.upper()
        self.extra_holidays = set(extra_holidays)
        self._calendar: holidays.HolidayBase | None = None

    @property
    def calendar(self) -> holidays.HolidayBase:
        if self._calendar is None:
            self._calendar = holidays.country_holidays(self.country)
        return self._calendar

    async def is_rest_day(self, day: datetime.date) -> bool:
        return day.weekday() in self.calendar.weekend

    async def is_designated_holiday(self, day: datetime.date) -> bool:
        return day in self.extra_holidays or day in self.calendar

    async def is_actual_working_day(self, day: datetime.date) -> bool:
        if day in self.extra_holidays:
            return False
        return self.calendar.is_working_day(day)

    def holiday_name(self, day: datetime.date) -> str | None:
        if day in self.extra_holidays and day not in self.calendar:
            return "Custom holiday"
        return self.calendar.get(day)


class StaticHolidayOracle:
    """Deterministic oracle over explicit holiday and make-up workday sets.

    *rest_weekdays* follows ``datetime`` convention: 0 = Monday … 6 = Sunday.
    A date listed in *workdays* is a working day even if it falls on a rest
    weekday or a holiday.
    """

    def __init__(
        self,
        holidays: Iterable[datetime.date] = (),
        workdays: Iterable[datetime.date] = (),
        rest_weekdays: Iterable[int] = (5, 6),
    ):
        self.holidays = set(holidays)
        self.workdays = set(workdays)
        self.rest_weekdays = frozenset(rest_weekdays)

    async def is_rest_day(self, day: datetime.date) -> bool:
        return day.weekday() in self.rest_weekdays

    async def is_designated_holiday(self, day: datetime.date) -> bool:
        return day in self.holidays

    async def is_actual_working_day(self, day: datetime.date) -> bool:
        if day in self.workdays:
            return True
        return day.weekday() not in self.rest_weekdays and day not in self.holidays

    def holiday_name(self, day: datetime.date) -> str | None:
        return "Holiday" if day in self.holidays else None


def get_oracle(
    country: str,
    extra_holidays: Iterable[datetime.date] = (),
) -> CountryHolidayOracle:
    """Return a fresh oracle for the given *country* preset.

    Raises ``KeyError`` if the country is not supported.
    """
    if country.lower() not in PRESETS:
        supported = ", ".join(sorted(PRESETS))
        msg = f"Unknown country preset {country!r}. Supported: {supported}"
        raise KeyError(msg)
    return CountryHolidayOracle(country, extra_holidays)
