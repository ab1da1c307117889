"""Day-by-day classification of a date range.

Each day is classified once per computation by asking the holiday oracle
three questions. The resulting :class:`DayRecord` list is immutable and is
wrapped in a :class:`DaySequence` that precomputes the per-day lookups the
optimizer needs in its inner loops.
"""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Awaitable, Callable, Iterable
from typing import NamedTuple

from loguru import logger

from leaveplan.oracle import HolidayOracle

ORACLE_TIMEOUT = 5.0
"""Seconds allowed for a single oracle predicate call."""

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


class InvalidRangeError(ValueError):
    """The end of a date range lies before its start."""


class ClassificationCancelled(Exception):
    """Classification stopped because the caller's cancel event was set."""


class DayRecord(NamedTuple):
    """Classification of one calendar day."""

    date: datetime.date
    is_weekend: bool
    is_holiday: bool
    is_working_day: bool


def parse_date(value: str | datetime.date) -> datetime.date:
    """Accept a ``datetime.date`` or a YYYY-MM-DD string.

    Malformed strings raise ``ValueError``.
    """
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(value)


class DaySequence:
    """Index-space view over an ordered, gap-free list of day records.

    ``off_before[i]`` / ``off_after[i]`` count the consecutive non-working
    days immediately before / after day *i*. ``off_runs`` lists the maximal
    runs of non-working days as inclusive ``(start, end)`` index pairs.
    ``holidays_upto[i]`` / ``weekends_upto[i]`` count holidays / plain rest
    days (rest pattern, not a holiday) among the first *i* days.
    """

    def __init__(self, records: list[DayRecord]):
        self.records = records
        self.num_days = len(records)
        self.dates: list[datetime.date] = [r.date for r in records]
        self.iso: list[str] = [d.isoformat() for d in self.dates]
        self.index_of: dict[datetime.date, int] = {d: i for i, d in enumerate(self.dates)}
        self.is_weekend: list[bool] = [r.is_weekend for r in records]
        self.is_holiday: list[bool] = [r.is_holiday for r in records]
        self.is_off: list[bool] = [not r.is_working_day for r in records]

        n = self.num_days
        self.off_before: list[int] = [0] * n
        self.off_after: list[int] = [0] * n
        for i in range(1, n):
            if self.is_off[i - 1]:
                self.off_before[i] = self.off_before[i - 1] + 1
        for i in range(n - 2, -1, -1):
            if self.is_off[i + 1]:
                self.off_after[i] = self.off_after[i + 1] + 1

        self.off_runs: list[tuple[int, int]] = [
            (i, i + self.off_after[i])
            for i in range(n)
            if self.is_off[i] and self.off_before[i] == 0
        ]

        self.holidays_upto: list[int] = [0] * (n + 1)
        self.weekends_upto: list[int] = [0] * (n + 1)
        for i in range(n):
            plain_rest = self.is_weekend[i] and not self.is_holiday[i]
            self.holidays_upto[i + 1] = self.holidays_upto[i] + self.is_holiday[i]
            self.weekends_upto[i + 1] = self.weekends_upto[i] + plain_rest

    def indices(self, dates: Iterable[datetime.date]) -> list[int]:
        """Sorted indices of *dates* that fall inside the sequence."""
        return sorted({self.index_of[d] for d in dates if d in self.index_of})


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


async def _ask(
    predicate: Callable[[datetime.date], Awaitable[bool]],
    day: datetime.date,
    timeout: float,
) -> bool | None:
    """Await one oracle predicate; ``None`` means the lookup failed."""
    try:
        return bool(await asyncio.wait_for(predicate(day), timeout))
    except Exception as exc:
        name = getattr(predicate, "__name__", repr(predicate))
        logger.warning(f"Oracle lookup {name} failed for {day.isoformat()}: {exc!r}")
        return None


async def classify_day(
    day: datetime.date,
    oracle: HolidayOracle,
    timeout: float = ORACLE_TIMEOUT,
) -> DayRecord:
    """Classify a single day.

    A failed lookup is treated as "not a rest day" / "not a holiday"; a failed
    working-day lookup falls back to "neither rest day nor holiday".
    """
    rest, holiday, working = await asyncio.gather(
        _ask(oracle.is_rest_day, day, timeout),
        _ask(oracle.is_designated_holiday, day, timeout),
        _ask(oracle.is_actual_working_day, day, timeout),
    )
    rest = bool(rest)
    holiday = bool(holiday)
    if working is None:
        working = not (rest or holiday)
    return DayRecord(date=day, is_weekend=rest, is_holiday=holiday, is_working_day=working)


async def classify(
    start: str | datetime.date,
    end: str | datetime.date,
    oracle: HolidayOracle,
    *,
    cancel: asyncio.Event | None = None,
    timeout: float = ORACLE_TIMEOUT,
) -> list[DayRecord]:
    """Return one :class:`DayRecord` per day in ``[start, end]``.

    Raises ``InvalidRangeError`` if *end* is before *start* and
    ``ClassificationCancelled`` if *cancel* gets set mid-range.
    """
    start_date = parse_date(start)
    end_date = parse_date(end)
    if end_date < start_date:
        raise InvalidRangeError(f"End date {end_date} is before start date {start_date}")

    records: list[DayRecord] = []
    num_days = (end_date - start_date).days + 1
    for offset in range(num_days):
        if cancel is not None and cancel.is_set():
            raise ClassificationCancelled(f"Cancelled after {offset} of {num_days} days")
        day = start_date + datetime.timedelta(days=offset)
        records.append(await classify_day(day, oracle, timeout))

    logger.debug(f"Classified {num_days} days from {start_date} to {end_date}")
    return records


async def list_holidays(
    start: str | datetime.date,
    end: str | datetime.date,
    oracle: HolidayOracle,
) -> list[datetime.date]:
    """Designated holidays in ``[start, end]``."""
    records = await classify(start, end, oracle)
    return [r.date for r in records if r.is_holiday]


async def list_makeup_workdays(
    start: str | datetime.date,
    end: str | datetime.date,
    oracle: HolidayOracle,
) -> list[datetime.date]:
    """Rest-pattern days in ``[start, end]`` that still carry work."""
    records = await classify(start, end, oracle)
    return [r.date for r in records if r.is_weekend and r.is_working_day]
