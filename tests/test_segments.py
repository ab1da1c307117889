from __future__ import annotations

import asyncio
import datetime

from leaveplan.classifier import DayRecord, DaySequence, classify
from leaveplan.oracle import StaticHolidayOracle
from leaveplan.segments import (
    RunFormatter,
    describe,
    inclusive_run_length,
    leave_blocks,
    leave_only_run_length,
    touched_runs,
)


def _records(start: str, end: str) -> list[DayRecord]:
    oracle = StaticHolidayOracle(
        holidays=[datetime.date(2025, 7, d) for d in range(1, 6)],
        workdays=[datetime.date(2025, 7, 13)],
    )
    return asyncio.run(classify(start, end, oracle))


def _jul(*days: int) -> list[datetime.date]:
    return [datetime.date(2025, 7, d) for d in days]


class TestRunLengths:
    def test_inclusive_run_bridges_holiday_block(self) -> None:
        records = _records("2025-07-01", "2025-07-14")
        assert inclusive_run_length(_jul(7, 8, 9), records) == 9

    def test_leave_only_run_counts_leave_days(self) -> None:
        records = _records("2025-07-01", "2025-07-14")
        assert leave_only_run_length(_jul(7, 8, 9), records) == 3

    def test_weekend_does_not_break_leave_only_run(self) -> None:
        # Fri Jul 18 and Mon Jul 21 around an ordinary weekend
        records = _records("2025-07-14", "2025-07-31")
        assert leave_only_run_length(_jul(18, 21), records) == 2
        assert inclusive_run_length(_jul(18, 21), records) == 4

    def test_makeup_workday_breaks_runs(self) -> None:
        # Sunday Jul 13 is a make-up workday
        records = _records("2025-07-01", "2025-07-20")
        assert leave_only_run_length(_jul(11, 14), records) == 1
        assert inclusive_run_length(_jul(11, 14), records) == 2

    def test_no_leave(self) -> None:
        records = _records("2025-07-01", "2025-07-14")
        assert inclusive_run_length([], records) == 0
        assert leave_only_run_length([], records) == 0


class TestTouchedRuns:
    def test_runs_merge_across_days_off(self) -> None:
        records = _records("2025-07-14", "2025-07-31")
        seq = DaySequence(records)
        runs = touched_runs(seq.indices(_jul(18, 21)), seq)
        # Jul 18 is index 4, Jul 21 is index 7
        assert runs == [(4, 7, 2)]

    def test_separate_runs(self) -> None:
        records = _records("2025-07-14", "2025-07-31")
        seq = DaySequence(records)
        runs = touched_runs(seq.indices(_jul(15, 17)), seq)
        assert runs == [(1, 1, 1), (3, 3, 1)]


class TestLeaveBlocks:
    def test_block_breakdown(self) -> None:
        records = _records("2025-07-01", "2025-07-14")
        seq = DaySequence(records)
        blocks = leave_blocks(seq.indices(_jul(7, 8, 9)), seq)
        assert len(blocks) == 1
        block = blocks[0]
        assert block.start_date == datetime.date(2025, 7, 1)
        assert block.end_date == datetime.date(2025, 7, 9)
        assert block.total_days == 9
        assert block.leave_days == 3
        assert block.holidays == 5
        # Saturday Jul 5 is counted as a holiday, only Sunday Jul 6 as weekend
        assert block.weekend_days == 1


class TestDescribe:
    def test_multi_day_and_single_day_runs(self) -> None:
        records = _records("2025-07-01", "2025-07-14")
        text = describe(_jul(7, 8, 9), records)
        # Saturday Jul 12 stands alone because Sunday Jul 13 is worked
        assert text == "2025-07-01 至 2025-07-09 (9天), 2025-07-12"

    def test_weekends_only(self) -> None:
        records = _records("2025-07-14", "2025-07-27")
        text = describe([], records)
        assert text == "2025-07-19 至 2025-07-20 (2天), 2025-07-26 至 2025-07-27 (2天)"

    def test_all_working(self) -> None:
        records = _records("2025-07-14", "2025-07-18")
        assert describe([], records) == ""


class TestRunFormatter:
    def test_untouched_run_before_and_absorbed_run(self) -> None:
        seq = DaySequence(_records("2025-07-01", "2025-07-14"))
        runs = touched_runs(seq.indices(_jul(11)), seq)
        assert runs == [(10, 11, 1)]
        # Saturday Jul 12 is absorbed by the run starting on Friday Jul 11
        text = RunFormatter(seq).describe(runs)
        assert text == "2025-07-01 至 2025-07-06 (6天), 2025-07-11 至 2025-07-12 (2天)"

    def test_untouched_runs_interleave_in_order(self) -> None:
        seq = DaySequence(_records("2025-07-01", "2025-07-14"))
        formatter = RunFormatter(seq)
        runs = touched_runs(seq.indices(_jul(9, 14)), seq)
        assert formatter.describe(runs) == (
            "2025-07-01 至 2025-07-06 (6天), 2025-07-09, 2025-07-12, 2025-07-14"
        )
        # Taking the make-up Sunday joins it to the Saturday before
        runs = touched_runs(seq.indices(_jul(13)), seq)
        assert formatter.describe(runs) == (
            "2025-07-01 至 2025-07-06 (6天), 2025-07-12 至 2025-07-13 (2天)"
        )

    def test_blocks_are_memoized(self) -> None:
        seq = DaySequence(_records("2025-07-01", "2025-07-14"))
        formatter = RunFormatter(seq)
        first = formatter.blocks(touched_runs(seq.indices(_jul(7, 8)), seq))
        second = formatter.blocks(touched_runs(seq.indices(_jul(7, 8)), seq))
        assert first[0] is second[0]
        assert first[0].holidays == 5
        assert first[0].weekend_days == 1
        assert first[0].total_days == 8
