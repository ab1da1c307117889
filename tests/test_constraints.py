from __future__ import annotations

import asyncio
import datetime

import pytest

from leaveplan.classifier import DayRecord, classify
from leaveplan.constraints import (
    MandatoryRange,
    VacationConstraints,
    effective_run_limit,
    mandatory_coverage,
    validate,
)
from leaveplan.oracle import StaticHolidayOracle


def _july_records() -> list[DayRecord]:
    oracle = StaticHolidayOracle(holidays=[datetime.date(2025, 7, d) for d in range(1, 6)])
    return asyncio.run(classify("2025-07-01", "2025-07-31", oracle))


def _jul(*days: int) -> list[datetime.date]:
    return [datetime.date(2025, 7, d) for d in days]


class TestBuild:
    def test_build_from_strings(self) -> None:
        c = VacationConstraints.build(
            excluded_dates=["2025-07-08"],
            mandatory_ranges=[("2025-07-14", "2025-07-18", 2)],
            max_continuous_days=3,
        )
        assert c.excluded_dates == frozenset(_jul(8))
        assert c.mandatory_ranges == (
            MandatoryRange(datetime.date(2025, 7, 14), datetime.date(2025, 7, 18), 2),
        )
        assert c.max_continuous_days == 3

    def test_negative_limit_rejected(self) -> None:
        with pytest.raises(ValueError):
            VacationConstraints.build(max_continuous_days=-1)

    def test_malformed_date_rejected(self) -> None:
        with pytest.raises(ValueError):
            VacationConstraints.build(excluded_dates=["07/08/2025"])

    def test_dict_round_trip(self) -> None:
        data = {
            "excluded_dates": ["2025-07-08", "2025-07-07"],
            "mandatory_ranges": [
                {"start_date": "2025-07-14", "end_date": "2025-07-18", "days": 2}
            ],
            "max_continuous_days": 0,
        }
        c = VacationConstraints.from_dict(data)
        out = c.to_dict()
        assert out["excluded_dates"] == ["2025-07-07", "2025-07-08"]
        assert out["mandatory_ranges"] == data["mandatory_ranges"]
        assert out["max_continuous_days"] == 0

    def test_is_empty(self) -> None:
        assert VacationConstraints().is_empty
        assert VacationConstraints.from_dict({}).is_empty
        assert not VacationConstraints(max_continuous_days=0).is_empty

    def test_effective_run_limit(self) -> None:
        assert effective_run_limit(VacationConstraints()) is None
        assert effective_run_limit(VacationConstraints(max_continuous_days=0)) == 1
        assert effective_run_limit(VacationConstraints(max_continuous_days=4)) == 4


class TestValidate:
    def test_no_constraints(self) -> None:
        assert validate(_jul(7, 8, 9), _july_records(), None) is True
        assert validate(_jul(7, 8, 9), _july_records(), VacationConstraints()) is True

    def test_excluded_date(self) -> None:
        c = VacationConstraints.build(excluded_dates=["2025-07-08"])
        records = _july_records()
        assert validate(_jul(7, 8, 9), records, c) is False
        assert validate(_jul(7, 9, 10), records, c) is True

    def test_mandatory_range(self) -> None:
        c = VacationConstraints.build(mandatory_ranges=[("2025-07-14", "2025-07-18", 2)])
        records = _july_records()
        assert validate(_jul(7, 8, 14), records, c) is False
        assert validate(_jul(7, 14, 15), records, c) is True

    def test_mandatory_range_bounds_inclusive(self) -> None:
        c = VacationConstraints.build(mandatory_ranges=[("2025-07-14", "2025-07-18", 2)])
        assert validate(_jul(14, 18), _july_records(), c) is True

    def test_max_continuous(self) -> None:
        c = VacationConstraints(max_continuous_days=2)
        records = _july_records()
        assert validate(_jul(7, 8, 9), records, c) is False
        assert validate(_jul(7, 8), records, c) is True
        # An unselected workday ends the run
        assert validate(_jul(7, 9), records, c) is True

    def test_weekend_does_not_reset_run(self) -> None:
        c = VacationConstraints(max_continuous_days=2)
        # Thu, Fri, then Mon after the weekend: one leave-only run of 3
        assert validate(_jul(17, 18, 21), _july_records(), c) is False

    def test_zero_means_isolated_days(self) -> None:
        c = VacationConstraints(max_continuous_days=0)
        records = _july_records()
        assert validate(_jul(8), records, c) is True
        assert validate(_jul(8, 10), records, c) is True
        assert validate(_jul(8, 9), records, c) is False
        assert validate(_jul(18, 21), records, c) is False

    def test_conflicting_constraints_reject_everything(self) -> None:
        c = VacationConstraints.build(
            excluded_dates=["2025-07-14", "2025-07-15"],
            mandatory_ranges=[("2025-07-14", "2025-07-15", 1)],
        )
        records = _july_records()
        assert validate(_jul(14), records, c) is False
        assert validate(_jul(16), records, c) is False


class TestMandatoryCoverage:
    def test_coverage_counts(self) -> None:
        c = VacationConstraints.build(
            mandatory_ranges=[("2025-07-14", "2025-07-18", 2), ("2025-07-21", "2025-07-25", 1)]
        )
        coverage = mandatory_coverage(_jul(7, 14, 15), c)
        assert [(taken, required) for _r, taken, required in coverage] == [(2, 2), (0, 1)]

    def test_no_constraints(self) -> None:
        assert mandatory_coverage(_jul(7), None) == []
