"""Contiguous-run analysis of a leave selection.

Two run definitions are used and must not be confused:

* **inclusive** runs extend through any day that is either a selected leave
  day or a non-working day. Their length is the time off actually enjoyed
  and is what plans report as ``continuous_days``.
* **leave-only** runs count selected leave days only. A non-working day that
  is not selected neither extends nor breaks the run; only an unselected
  working day ends it. This is what ``max_continuous_days`` limits.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable, Sequence
from typing import NamedTuple

from leaveplan.classifier import DayRecord, DaySequence


class VacationBlock(NamedTuple):
    """A contiguous block of days off that includes at least one leave day."""

    start_date: datetime.date
    end_date: datetime.date
    total_days: int
    leave_days: int
    holidays: int
    weekend_days: int


# ---------------------------------------------------------------------------
# Index-space helpers (used by the optimizer's inner loops)
# ---------------------------------------------------------------------------


def touched_runs(indices: Sequence[int], seq: DaySequence) -> list[tuple[int, int, int]]:
    """Inclusive runs touching the sorted selection *indices*.

    Returns ``(start, end, leave_count)`` triples with inclusive bounds.
    ``leave_count`` is also the leave-only run length of that stretch.
    """
    off_before = seq.off_before
    off_after = seq.off_after
    runs: list[tuple[int, int, int]] = []
    i = 0
    n = len(indices)
    while i < n:
        d = indices[i]
        start = d - off_before[d]
        end = d + off_after[d]
        count = 1
        i += 1
        while i < n and indices[i] <= end + 1:
            d = indices[i]
            end = max(end, d + off_after[d])
            count += 1
            i += 1
        runs.append((start, end, count))
    return runs


class RunFormatter:
    """Turns touched runs into blocks and descriptions for one sequence.

    Labels of the untouched off-day runs are rendered once. Blocks and
    labels of touched runs are memoized per (start, end[, leave count]).
    """

    def __init__(self, seq: DaySequence):
        self.seq = seq
        self._labels: dict[tuple[int, int], str] = {}
        self._blocks: dict[tuple[int, int, int], VacationBlock] = {}
        self._off_starts = [start for start, _end in seq.off_runs]
        self._off_labels = [self.label(start, end) for start, end in seq.off_runs]

    def label(self, start: int, end: int) -> str:
        key = (start, end)
        text = self._labels.get(key)
        if text is None:
            iso = self.seq.iso
            if start == end:
                text = iso[start]
            else:
                text = f"{iso[start]} 至 {iso[end]} ({end - start + 1}天)"
            self._labels[key] = text
        return text

    def block(self, start: int, end: int, leave_days: int) -> VacationBlock:
        key = (start, end, leave_days)
        block = self._blocks.get(key)
        if block is None:
            seq = self.seq
            block = VacationBlock(
                start_date=seq.dates[start],
                end_date=seq.dates[end],
                total_days=end - start + 1,
                leave_days=leave_days,
                holidays=seq.holidays_upto[end + 1] - seq.holidays_upto[start],
                weekend_days=seq.weekends_upto[end + 1] - seq.weekends_upto[start],
            )
            self._blocks[key] = block
        return block

    def blocks(self, runs: Sequence[tuple[int, int, int]]) -> list[VacationBlock]:
        return [self.block(start, end, count) for start, end, count in runs]

    def describe(self, runs: Sequence[tuple[int, int, int]]) -> str:
        """Interleave the touched *runs* with the untouched off-day runs."""
        off_starts = self._off_starts
        off_labels = self._off_labels
        num_off = len(off_starts)
        parts: list[str] = []
        k = 0
        for start, end, _count in runs:
            while k < num_off and off_starts[k] < start:
                parts.append(off_labels[k])
                k += 1
            # Off-day runs inside a touched run are part of it
            while k < num_off and off_starts[k] <= end:
                k += 1
            parts.append(self.label(start, end))
        parts.extend(off_labels[k:])
        return ", ".join(parts)


def leave_blocks(indices: Sequence[int], seq: DaySequence) -> list[VacationBlock]:
    """Touched runs as :class:`VacationBlock` objects, in chronological order."""
    return RunFormatter(seq).blocks(touched_runs(indices, seq))


# ---------------------------------------------------------------------------
# Public date-based API
# ---------------------------------------------------------------------------


def inclusive_run_length(
    leave_dates: Iterable[datetime.date],
    day_records: list[DayRecord],
) -> int:
    """Longest inclusive run touching a leave date (0 without leave)."""
    seq = DaySequence(day_records)
    runs = touched_runs(seq.indices(leave_dates), seq)
    return max((end - start + 1 for start, end, _ in runs), default=0)


def leave_only_run_length(
    leave_dates: Iterable[datetime.date],
    day_records: list[DayRecord],
) -> int:
    """Longest run of leave days, skipping over unselected days off."""
    selected = set(leave_dates)
    longest = current = 0
    for record in day_records:
        if record.date in selected:
            current += 1
            longest = max(longest, current)
        elif record.is_working_day:
            current = 0
    return longest


def describe(
    leave_dates: Iterable[datetime.date],
    day_records: list[DayRecord],
) -> str:
    """Render every selected-or-non-working run of the range, in order.

    A single day renders as ``"2025-07-05"``, a longer run as
    ``"2025-07-01 至 2025-07-09 (9天)"``; runs are joined by ``", "``.
    """
    seq = DaySequence(day_records)
    return RunFormatter(seq).describe(touched_runs(seq.indices(leave_dates), seq))
